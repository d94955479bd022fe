"""Tests for plugin input assembly from layered sources."""

import json
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

WATTS_CONFIG = """
# WaTTS configuration
service.info.description = Simple Info Service
service.info.cmd = /usr/lib/watts/plugins/info.py
service.info.plugin.lifetime = 3600
service.info.plugin.key_type =  rsa
service.ssh.plugin.lifetime = 60
  service.info.plugin.greeting = hello world
"""

small_values = st.one_of(st.none(), st.booleans(), st.integers(), st.text(max_size=5))
documents = st.dictionaries(st.sampled_from(["a", "b", "c", "d"]), small_values, max_size=4)


class TestMerge:
    """Top-level key-wise union; later overrides win whole."""

    def test_later_override_wins(self) -> None:
        from watts_tester.core.merge import merge

        merged = merge({"a": 1, "b": 1}, [{"b": 2, "c": 2}, {"c": 3}])

        assert merged == {"a": 1, "b": 2, "c": 3}

    def test_nested_objects_replaced_not_spliced(self) -> None:
        from watts_tester.core.merge import merge

        merged = merge({"conf_params": {"a": "1", "b": "2"}}, [{"conf_params": {"c": "3"}}])

        assert merged == {"conf_params": {"c": "3"}}

    def test_arrays_replaced_not_concatenated(self) -> None:
        from watts_tester.core.merge import merge

        assert merge({"x": [1, 2]}, [{"x": [3]}]) == {"x": [3]}

    def test_arguments_not_modified(self) -> None:
        from watts_tester.core.merge import merge

        base = {"user_info": {"iss": "a", "sub": "b"}}
        override = {"params": {"k": "v"}}

        merged = merge(base, [override])
        merged["user_info"]["sub"] = "changed"
        merged["params"]["k"] = "changed"

        assert base == {"user_info": {"iss": "a", "sub": "b"}}
        assert override == {"params": {"k": "v"}}

    def test_non_object_override_rejected(self) -> None:
        from watts_tester.contracts import MalformedOverrideError
        from watts_tester.core.merge import merge

        with pytest.raises(MalformedOverrideError):
            merge({}, [["not", "an", "object"]])  # type: ignore[list-item]

    @given(base=documents, overrides=st.lists(documents, max_size=4))
    def test_highest_precedence_value_wins(
        self, base: dict[str, object], overrides: list[dict[str, object]]
    ) -> None:
        from watts_tester.core.merge import merge

        merged = merge(base, overrides)

        for key in set(base).union(*overrides):
            winners = [doc[key] for doc in [base, *overrides] if key in doc]
            assert merged[key] == winners[-1]
        assert set(merged) == set(base).union(*overrides)


class TestParseOverride:
    """Overrides must be JSON objects."""

    def test_object(self) -> None:
        from watts_tester.core.merge import parse_override

        assert parse_override('{"action": "request"}', "input string") == {"action": "request"}

    @pytest.mark.parametrize("text", ["{not json", "[1, 2]", '"text"', "null"])
    def test_malformed(self, text: str) -> None:
        from watts_tester.contracts import MalformedOverrideError
        from watts_tester.core.merge import parse_override

        with pytest.raises(MalformedOverrideError, match="input string"):
            parse_override(text, "input string")

    @pytest.mark.parametrize("text", ['{"x": 1e400}', "NaN", '{"x": Infinity}', '{"x": -Infinity}'])
    def test_non_finite_numbers_rejected(self, text: str) -> None:
        from watts_tester.contracts import ExitCode, MalformedOverrideError
        from watts_tester.core.merge import parse_override

        with pytest.raises(MalformedOverrideError, match="input string") as exc_info:
            parse_override(text, "input string")
        assert exc_info.value.exit_code is ExitCode.USER_ERROR


class TestExtractConfigParams:
    """conf_params come from `service.<id>.plugin.<key>` lines."""

    def test_extracts_all_matching_lines(self) -> None:
        from watts_tester.core.merge import extract_config_params

        extracted = extract_config_params(WATTS_CONFIG, "info")

        assert extracted == {
            "conf_params": {
                "lifetime": "3600",
                "key_type": "rsa",
                "greeting": "hello world",
            }
        }

    def test_other_services_ignored(self) -> None:
        from watts_tester.core.merge import extract_config_params

        assert extract_config_params(WATTS_CONFIG, "ssh") == {"conf_params": {"lifetime": "60"}}

    def test_service_id_is_literal(self) -> None:
        from watts_tester.contracts import ConfigExtractionError
        from watts_tester.core.merge import extract_config_params

        with pytest.raises(ConfigExtractionError):
            extract_config_params("service.infoX.plugin.a = 1\n", "info.")

    def test_empty_value_does_not_swallow_next_line(self) -> None:
        from watts_tester.core.merge import extract_config_params

        text = "service.x.plugin.a =\nservice.x.plugin.b = 2\nservice.x.plugin.c=   \n"

        assert extract_config_params(text, "x") == {"conf_params": {"a": "", "b": "2", "c": ""}}

    def test_no_match(self) -> None:
        from watts_tester.contracts import ConfigExtractionError
        from watts_tester.core.merge import extract_config_params

        with pytest.raises(ConfigExtractionError, match="'missing' in 'watts.conf'"):
            extract_config_params(WATTS_CONFIG, "missing", "watts.conf")


class TestInputSources:
    """Source combinations are checked up front."""

    def test_config_requires_identifier(self, tmp_path: Path) -> None:
        from pydantic import ValidationError

        from watts_tester.core.merge import InputSources

        with pytest.raises(ValidationError, match="config identifier"):
            InputSources(config_file=tmp_path / "watts.conf")

    def test_precedence_order(self, tmp_path: Path) -> None:
        from watts_tester.core.merge import InputSources, collect_overrides

        config = tmp_path / "watts.conf"
        config.write_text(WATTS_CONFIG)
        input_file = tmp_path / "input.json"
        input_file.write_text(json.dumps({"action": "request", "params": {"a": "file"}}))

        sources = InputSources(
            input_string='{"params": {"a": "string"}}',
            input_file=input_file,
            config_file=config,
            config_id="info",
        )

        overrides = collect_overrides(sources)

        assert [sorted(doc) for doc in overrides] == [
            ["conf_params"],
            ["action", "params"],
            ["params"],
        ]

    def test_unreadable_input_file(self, tmp_path: Path) -> None:
        from watts_tester.contracts import UserInputError
        from watts_tester.core.merge import InputSources, collect_overrides

        with pytest.raises(UserInputError, match="Cannot read input file"):
            collect_overrides(InputSources(input_file=tmp_path / "missing.json"))


class TestAssemblePluginInput:
    """Assembly merges, resolves the action, stamps and validates."""

    def test_default_assembly(self) -> None:
        from watts_tester.core.merge import assemble_plugin_input

        document = assemble_plugin_input([])

        assert document["action"] == "parameter"
        assert document["watts_version"] == "1.0.0"
        assert document["watts_userid"] == (
            "eyJpc3N1ZXIiOiJodHRwczpcL1wvaXNzdWVyLmV4YW1wbGUuY29tIiwic3ViamVjdCI6IjEyMzQ1Njc4OSJ9"
        )

    def test_explicit_action_wins_over_documents(self) -> None:
        from watts_tester.core.merge import assemble_plugin_input

        document = assemble_plugin_input([{"action": "revoke"}], action="request")

        assert document["action"] == "request"

    def test_document_action_used_without_explicit_action(self) -> None:
        from watts_tester.core.merge import assemble_plugin_input

        assert assemble_plugin_input([{"action": "revoke"}])["action"] == "revoke"

    def test_user_id_follows_overridden_user_info(self) -> None:
        from watts_tester.core.identity import derive_user_id
        from watts_tester.core.merge import assemble_plugin_input

        user_info = {"iss": "https://other.example", "sub": "42"}

        document = assemble_plugin_input([{"user_info": user_info, "watts_userid": "forged"}])

        assert document["watts_userid"] == derive_user_id(user_info)

    def test_unknown_action(self) -> None:
        from watts_tester.contracts import UnknownActionError
        from watts_tester.core.merge import assemble_plugin_input

        with pytest.raises(UnknownActionError, match="'foo'"):
            assemble_plugin_input([], action="foo")

    def test_schema_violation(self) -> None:
        from watts_tester.contracts import InvalidPluginInputError
        from watts_tester.core.merge import assemble_plugin_input

        with pytest.raises(InvalidPluginInputError) as exc_info:
            assemble_plugin_input([{"params": []}])
        assert exc_info.value.path == ("params",)

    def test_unsupported_version(self) -> None:
        from watts_tester.contracts import UnknownSchemaError
        from watts_tester.core.merge import assemble_plugin_input

        with pytest.raises(UnknownSchemaError):
            assemble_plugin_input([{"watts_version": "2.0.0"}])

    def test_build_from_sources(self, tmp_path: Path) -> None:
        from watts_tester.core.merge import InputSources, build_plugin_input

        config = tmp_path / "watts.conf"
        config.write_text(WATTS_CONFIG)

        document = build_plugin_input(
            InputSources(
                input_string='{"cred_state": "abc"}',
                config_file=config,
                config_id="ssh",
            ),
            action="revoke",
        )

        assert document["conf_params"] == {"lifetime": "60"}
        assert document["cred_state"] == "abc"
        assert document["action"] == "revoke"
