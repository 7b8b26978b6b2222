"""Integration tests — run main.py as a subprocess over NDJSON input."""

import json
import os
import subprocess
import sys

MAIN_PY = os.path.join(os.path.dirname(__file__), "..", "main.py")
ROOT = os.path.join(os.path.dirname(__file__), "..")


def _run(*args: str, stdin: str = "", env: dict | None = None) -> subprocess.CompletedProcess:
    full_env = dict(os.environ)
    full_env["PYTHONPATH"] = os.path.abspath(ROOT)
    for key in ("INSTRUMENTATION_KEY", "STANDARD_SCHEMA", "CONTEXT_TAG_SOURCES",
                "TIME_PROPERTY", "MESSAGE_PROPERTY", "SEVERITY_PROPERTY"):
        full_env.pop(key, None)
    full_env.update(env or {})
    return subprocess.run(
        [sys.executable, MAIN_PY, *args],
        input=stdin,
        capture_output=True,
        text=True,
        env=full_env,
    )


class TestCli:
    def test_stdin_to_envelopes(self):
        stdin = "\n".join([
            json.dumps({"message": "hello", "kubernetes": {"container_name": "web"}}),
            json.dumps({"data": {"baseType": "RequestData", "baseData": {}}}),
            "garbage",
        ])
        result = _run(
            "--instrumentation-key", "000-000-000",
            "--standard-schema",
            "--context-tag-sources", "ai.cloud.role:$.kubernetes.container_name",
            stdin=stdin,
        )
        assert result.returncode == 0, result.stderr
        envelopes = [json.loads(line) for line in result.stdout.splitlines()]
        assert len(envelopes) == 2
        assert envelopes[0]["tags"]["ai.cloud.role"] == "web"
        assert envelopes[0]["data"]["baseData"]["message"] == "hello"
        assert envelopes[1]["name"] == "Microsoft.ApplicationInsights.000000000.Request"
        assert "processed=2, skipped=1" in result.stderr

    def test_yaml_config_and_file_input(self, tmp_path):
        config = tmp_path / "config.yml"
        config.write_text(
            "instrumentation_key: ikey\n"
            "severity_property: level\n"
            "severity_level_critical: fatal, panic\n"
        )
        records = tmp_path / "records.ndjson"
        records.write_text(json.dumps({"message": "m", "level": "PANIC"}) + "\n")
        result = _run("--config", str(config), str(records))
        assert result.returncode == 0, result.stderr
        envelope = json.loads(result.stdout.strip())
        assert envelope["iKey"] == "ikey"
        assert envelope["data"]["baseData"]["severityLevel"] == 4

    def test_invalid_context_tag_exits_nonzero(self):
        result = _run(
            "--context-tag-sources", "invalid_tag_name:kubernetes_container_name",
            stdin="{}\n",
        )
        assert result.returncode == 2
        assert "Context tag 'invalid_tag_name' is invalid!" in result.stderr
        assert result.stdout == ""

    def test_undecodable_line_skipped(self, tmp_path):
        records = tmp_path / "records.ndjson"
        records.write_bytes(b'{"message":"a"}\n{"message":"\xff"}\n{"message":"c"}\n')
        result = _run(str(records))
        assert result.returncode == 0, result.stderr
        messages = [json.loads(line)["data"]["baseData"]["message"]
                    for line in result.stdout.splitlines()]
        assert messages == ["a", "c"]
        assert "processed=2, skipped=1" in result.stderr

    def test_missing_input_file_skipped(self, tmp_path):
        records = tmp_path / "records.ndjson"
        records.write_text(json.dumps({"message": "kept"}) + "\n")
        result = _run(str(tmp_path / "missing.ndjson"), str(records))
        assert result.returncode == 0, result.stderr
        assert "missing.ndjson not found, skipping" in result.stderr
        envelope = json.loads(result.stdout.strip())
        assert envelope["data"]["baseData"]["message"] == "kept"

    def test_no_standard_schema_overrides_yaml(self, tmp_path):
        config = tmp_path / "config.yml"
        config.write_text("standard_schema: true\n")
        stdin = json.dumps({"data": {"baseType": "RequestData", "baseData": {}}}) + "\n"
        result = _run("--config", str(config), "--no-standard-schema", stdin=stdin)
        assert result.returncode == 0, result.stderr
        envelope = json.loads(result.stdout.strip())
        assert envelope["data"]["baseType"] == "MessageData"

        result = _run("--config", str(config), stdin=stdin)
        assert json.loads(result.stdout.strip())["data"]["baseType"] == "RequestData"

    def test_non_mapping_severity_levels_exits_nonzero(self, tmp_path):
        config = tmp_path / "config.yml"
        config.write_text("severity_levels:\n  - fatal\n")
        result = _run("--config", str(config), stdin="{}\n")
        assert result.returncode == 2
        assert "severity_levels" in result.stderr
