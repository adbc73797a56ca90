"""Tests for interface definitions built from ABI JSON."""

import json

import pytest
from eth_utils import keccak

from calldata_interpreter.analyzer.interface import (
    FunctionSignature,
    InterfaceDefinition,
    InterfaceFormatError,
    Parameter,
    canonical_type,
    split_tuple_types,
)


class TestCanonicalType:
    """Canonical type strings used for selector derivation."""

    def test_plain_types_unchanged(self):
        assert canonical_type({"type": "address"}) == "address"
        assert canonical_type({"type": "bytes32[]"}) == "bytes32[]"

    def test_int_aliases_expanded(self):
        assert canonical_type({"type": "uint"}) == "uint256"
        assert canonical_type({"type": "int[]"}) == "int256[]"
        assert canonical_type({"type": "uint8"}) == "uint8"

    def test_tuple_expanded(self):
        param = {
            "type": "tuple[]",
            "components": [
                {"type": "address"},
                {"type": "tuple", "components": [{"type": "uint256"}, {"type": "bytes"}]},
            ],
        }
        assert canonical_type(param) == "(address,(uint256,bytes))[]"

    def test_tuple_without_components_rejected(self):
        with pytest.raises(InterfaceFormatError):
            canonical_type({"type": "tuple"})

    def test_missing_type_rejected(self):
        with pytest.raises(InterfaceFormatError):
            canonical_type({"name": "x"})

    def test_split_tuple_types(self):
        assert split_tuple_types("address,(uint256,bytes)[],bool") == ["address", "(uint256,bytes)[]", "bool"]


class TestFunctionSignature:
    """Selector derivation."""

    def test_store_selector(self):
        sig = FunctionSignature(name="store", parameters=(Parameter("num", "uint256"),))
        assert sig.canonical == "store(uint256)"
        assert sig.selector == bytes.fromhex("6057361d")
        assert sig.selector_hex == "0x6057361d"

    def test_well_known_transfer_selector(self):
        sig = FunctionSignature(
            name="transfer",
            parameters=(Parameter("to", "address"), Parameter("amount", "uint256")),
        )
        assert sig.selector_hex == "0xa9059cbb"

    def test_selector_matches_keccak_of_canonical(self):
        sig = FunctionSignature(name="retrieve")
        assert sig.selector == keccak(text="retrieve()")[:4]

    def test_unnamed_inputs_get_positional_names(self):
        sig = FunctionSignature.from_abi_item({"name": "f", "inputs": [{"type": "uint256"}, {"name": "", "type": "bool"}]})
        assert [p.name for p in sig.parameters] == ["arg0", "arg1"]


class TestInterfaceDefinition:
    """Building interfaces from ABI documents."""

    def test_only_functions_are_kept(self, interface):
        assert set(interface.functions) == {"store", "retrieve", "transfer", "submitOrder"}

    def test_overloads_grouped_in_declaration_order(self, interface):
        variants = interface.functions["transfer"]
        assert [v.canonical for v in variants] == [
            "transfer(address,uint256)",
            "transfer(address,uint256,string)",
        ]
        assert variants[0].selector != variants[1].selector

    def test_tuple_parameter_signature(self, interface):
        (sig,) = interface.functions["submitOrder"]
        assert sig.canonical == "submitOrder((address,uint256[],bytes),uint64)"

    def test_iteration_and_len(self, interface):
        names = [name for name, _ in interface]
        assert names == ["store", "retrieve", "transfer", "transfer", "submitOrder"]
        assert len(interface) == 5

    def test_entries_without_type_are_functions(self):
        definition = InterfaceDefinition.from_abi([{"name": "ping", "inputs": []}])
        assert definition.signatures() == ["ping()"]

    def test_duplicate_entries_collapsed(self):
        item = {"type": "function", "name": "ping", "inputs": []}
        definition = InterfaceDefinition.from_abi([item, dict(item)])
        assert len(definition.functions["ping"]) == 1

    def test_functions_mapping_is_read_only(self, interface):
        with pytest.raises(TypeError):
            interface.functions["evil"] = ()

    def test_from_json_keeps_parsed_abi(self, sample_abi):
        definition = InterfaceDefinition.from_json(json.dumps(sample_abi))
        assert definition.abi == sample_abi

    def test_invalid_json_rejected(self):
        with pytest.raises(InterfaceFormatError):
            InterfaceDefinition.from_json("{not json")

    def test_non_array_rejected(self):
        with pytest.raises(InterfaceFormatError):
            InterfaceDefinition.from_json('{"abi": []}')

    def test_function_without_name_rejected(self):
        with pytest.raises(InterfaceFormatError):
            InterfaceDefinition.from_abi([{"type": "function", "inputs": []}])

    def test_non_object_entry_rejected(self):
        with pytest.raises(InterfaceFormatError):
            InterfaceDefinition.from_abi(["store(uint256)"])
