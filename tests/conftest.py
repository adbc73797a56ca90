import json
from unittest.mock import AsyncMock

import httpx
import pytest

from calldata_interpreter.analyzer import InterfaceDefinition, InterfaceResolver, InterpreterService
from calldata_interpreter.clients import ReasoningClient
from calldata_interpreter.config import load_prompt_config
from calldata_interpreter.storage import AbiFileCache

CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"

STORE_CALLDATA = "0x6057361d000000000000000000000000000000000000000000000000000000000000002a"

SAMPLE_ABI = [
    {
        "type": "constructor",
        "inputs": [{"name": "initial", "type": "uint256"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "store",
        "inputs": [{"name": "num", "type": "uint256"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "retrieve",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "transfer",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "transfer",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "memo", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "submitOrder",
        "inputs": [
            {
                "name": "order",
                "type": "tuple",
                "components": [
                    {"name": "maker", "type": "address"},
                    {"name": "amounts", "type": "uint256[]"},
                    {"name": "data", "type": "bytes"},
                ],
            },
            {"name": "deadline", "type": "uint64"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "event",
        "name": "Stored",
        "inputs": [{"name": "num", "type": "uint256", "indexed": False}],
        "anonymous": False,
    },
]


@pytest.fixture
def contract_address() -> str:
    return CONTRACT_ADDRESS


@pytest.fixture
def store_calldata() -> str:
    return STORE_CALLDATA


@pytest.fixture
def sample_abi() -> list:
    return json.loads(json.dumps(SAMPLE_ABI))


@pytest.fixture
def sample_abi_raw() -> str:
    # 注册表返回的原始文本（紧凑格式，带一个非 ASCII 字段用于逐字节比较）
    abi = json.loads(json.dumps(SAMPLE_ABI))
    abi[1]["notice"] = "almacena un número"
    return json.dumps(abi, separators=(",", ":"), ensure_ascii=False)


@pytest.fixture
def interface(sample_abi) -> InterfaceDefinition:
    return InterfaceDefinition.from_abi(sample_abi)


@pytest.fixture
def registry_payload(sample_abi_raw) -> dict:
    return {"status": "1", "message": "OK", "result": sample_abi_raw}


@pytest.fixture
def prompt_config():
    return load_prompt_config()


@pytest.fixture
def cache(tmp_path) -> AbiFileCache:
    return AbiFileCache(tmp_path / "ABI")


@pytest.fixture
def mock_registry(sample_abi_raw):
    """Registry client double whose get_abi returns the sample ABI text."""
    registry = AsyncMock()
    registry.get_abi.return_value = sample_abi_raw
    return registry


@pytest.fixture
def resolver(mock_registry, cache) -> InterfaceResolver:
    return InterfaceResolver(registry=mock_registry, cache=cache)


def chat_completion(content: str) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


@pytest.fixture
def reasoning_reply() -> str:
    return "RISK_LEVEL: Low\nEXPLANATION: Stores a number in the contract, no funds move."


@pytest.fixture
def reasoning_requests() -> list:
    return []


@pytest.fixture
def reasoning_client(reasoning_reply, reasoning_requests) -> ReasoningClient:
    def handler(request: httpx.Request) -> httpx.Response:
        reasoning_requests.append(request)
        return httpx.Response(200, json=chat_completion(reasoning_reply))

    return ReasoningClient(
        base_url="https://llm.test",
        api_key="sk-test",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def service(resolver, reasoning_client, prompt_config) -> InterpreterService:
    return InterpreterService(resolver=resolver, reasoning_client=reasoning_client, prompt_config=prompt_config)


@pytest.fixture
def make_chat_completion():
    return chat_completion
