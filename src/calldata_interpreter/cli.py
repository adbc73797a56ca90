"""
命令行入口

    calldata-interpreter decode  -a 0x... -d 0x6057361d...
    calldata-interpreter analyze -a 0x... -d 0x6057361d...
    calldata-interpreter extract --file reply.txt
    calldata-interpreter serve

与 HTTP 服务共用同一套组件，结果以 JSON 输出到 stdout。
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from calldata_interpreter.analyzer import InterpreterService, ResponseExtractor, ResponseMarkers
from calldata_interpreter.app_logging import configure_logging
from calldata_interpreter.config import get_settings, load_prompt_config
from calldata_interpreter.errors import CLIENT_ERRORS, InterpreterError
from calldata_interpreter.main import build_service, run

EXIT_CLIENT_ERROR = 2
EXIT_FAILURE = 1


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="calldata-interpreter",
        description="Decode contract call data and optionally ask an LLM for a risk assessment.",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("decode", "Resolve the contract ABI and decode call data"),
        ("analyze", "Decode call data and request a risk assessment"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("-a", "--address", required=True, help="Contract address (0x...)")
        p.add_argument("-d", "--data", required=True, help="Call data hex, with or without 0x")

    p = sub.add_parser("extract", help="Extract risk level and explanation from an LLM reply")
    p.add_argument("--file", help="Read the reply from a file instead of stdin")
    p.add_argument("--risk-prefix", help="Risk level marker (default from prompt config)")
    p.add_argument("--explanation-prefix", help="Explanation marker (default from prompt config)")

    sub.add_parser("serve", help="Run the HTTP service")
    return ap.parse_args(argv)


def _print(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _decode(service: InterpreterService, args: argparse.Namespace) -> dict[str, Any]:
    outcome = await service.decode(args.address, args.data)
    payload = outcome.call.to_dict()
    payload["contract_address"] = outcome.contract_address
    payload["abi_source"] = outcome.resolution.source
    if outcome.warnings:
        payload["warnings"] = outcome.warnings
    return payload


async def _analyze(service: InterpreterService, args: argparse.Namespace) -> dict[str, Any]:
    outcome = await service.analyze(args.address, args.data)
    payload = outcome.decoded.call.to_dict()
    payload["contract_address"] = outcome.decoded.contract_address
    payload.update(outcome.fields.to_dict())
    return payload


def _extract(args: argparse.Namespace) -> dict[str, Any]:
    risk_prefix = args.risk_prefix
    explanation_prefix = args.explanation_prefix
    if not risk_prefix or not explanation_prefix:
        response_format = load_prompt_config(get_settings().prompt_config_path).response_format
        risk_prefix = risk_prefix or response_format.risk_level_prefix
        explanation_prefix = explanation_prefix or response_format.explanation_prefix

    if args.file:
        with open(args.file, encoding="utf-8") as f:
            text = f.read()
    else:
        text = sys.stdin.read()

    markers = ResponseMarkers(risk_level_prefix=risk_prefix, explanation_prefix=explanation_prefix)
    return ResponseExtractor().extract(text, markers).to_dict()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    if args.command == "serve":
        run()
        return 0

    configure_logging(settings.log_level, "console", stream=sys.stderr)

    try:
        if args.command == "extract":
            _print(_extract(args))
            return 0

        service = build_service(settings)
        if args.command == "decode":
            _print(asyncio.run(_decode(service, args)))
        else:
            _print(asyncio.run(_analyze(service, args)))
        return 0
    except InterpreterError as e:
        print(json.dumps({"status": "error", **e.to_dict()}, ensure_ascii=False, default=str), file=sys.stderr)
        return EXIT_CLIENT_ERROR if isinstance(e, CLIENT_ERRORS) else EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
