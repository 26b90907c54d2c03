"""
Tests for interpreter configuration and the command line.
"""

import json

import pytest

from modscript import DEFAULT_CONFIG, ConfigError, load_config
from modscript.__main__ import (
    EXIT_ABORTED,
    EXIT_FAILED,
    EXIT_OK,
    answer_automatically,
    main,
)
from modscript.config import config_from_mapping
from modscript.runtime import PromptKind, PromptRequest


SCENARIO = r'if FileExists("readme.txt") then Copy("readme.txt", "Data\\readme.txt") else Warn("missing readme") endif'


@pytest.fixture
def workspace(tmp_path):
    """A mod directory, an empty game directory and a place for scripts."""
    mod = tmp_path / "mod"
    mod.mkdir()
    (mod / "readme.txt").write_text("hello")
    game = tmp_path / "game"
    game.mkdir()
    return tmp_path


def write_script(directory, text, name="install.ms"):
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def run_args(workspace, script, *extra):
    return ["run", script, "--source", str(workspace / "mod"),
            "--target", str(workspace / "game"), *extra]


# =============================================================================
# Configuration
# =============================================================================

class TestConfig:
    """Test YAML configuration loading."""

    def test_defaults(self):
        assert DEFAULT_CONFIG.max_loop_iterations == 10000
        assert DEFAULT_CONFIG.default_dialect == "stateofdecay"

    def test_load(self, tmp_path):
        path = tmp_path / "modscript.yaml"
        path.write_text("max_loop_iterations: 50\ndefault_dialect: monsterhunterworld\nlog_level: debug\n")
        config = load_config(path)
        assert config.max_loop_iterations == 50
        assert config.default_dialect == "monsterhunterworld"
        assert config.log_level == "DEBUG"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == DEFAULT_CONFIG

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("max_loop_iterations: [1\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(path)

    @pytest.mark.parametrize("data, message", [
        ({"max_loops": 5}, "unknown configuration key"),
        ({"max_loop_iterations": 0}, "positive integer"),
        ({"max_loop_iterations": True}, "positive integer"),
        ({"max_loop_iterations": "100"}, "positive integer"),
        ({"default_dialect": ""}, "non-empty string"),
        ({"log_level": "LOUD"}, "log_level"),
    ])
    def test_invalid_values(self, data, message):
        with pytest.raises(ConfigError, match=message):
            config_from_mapping(data)

    def test_root_must_be_mapping(self):
        with pytest.raises(ConfigError, match="mapping"):
            config_from_mapping(["max_loop_iterations", 5])


# =============================================================================
# Command line
# =============================================================================

class TestCheckCommand:
    """Test `check`."""

    def test_clean_script(self, workspace, capsys):
        script = write_script(workspace, SCENARIO)
        assert main(["check", script]) == EXIT_OK
        assert "OK: install.ms" in capsys.readouterr().out

    def test_unknown_function(self, workspace, capsys):
        script = write_script(workspace, "DoStuff()\n")
        assert main(["check", script]) == EXIT_FAILED
        err = capsys.readouterr().err
        assert "error[E203]" in err
        assert "1 error(s)" in err

    def test_syntax_error(self, workspace, capsys):
        script = write_script(workspace, "if x then\n")
        assert main(["check", script]) == EXIT_FAILED
        assert "E102" in capsys.readouterr().err

    def test_json_output(self, workspace, capsys):
        script = write_script(workspace, "x = 1\nDoStuff()\nWarn(y)\n")
        assert main(["check", script, "--json"]) == EXIT_FAILED
        report = json.loads(capsys.readouterr().out)
        assert report["error_count"] == 2
        assert report["warning_count"] == 0
        assert [d["code"] for d in report["diagnostics"]] == ["E203", "E204"]
        assert report["diagnostics"][0]["range"]["start"]["line"] == 2

    def test_json_output_clean(self, workspace, capsys):
        script = write_script(workspace, SCENARIO)
        assert main(["check", script, "--json"]) == EXIT_OK
        assert json.loads(capsys.readouterr().out) == {
            "diagnostics": [], "error_count": 0, "warning_count": 0,
        }

    def test_json_output_for_syntax_error(self, workspace, capsys):
        script = write_script(workspace, "x = ²\n")
        assert main(["check", script, "--json"]) == EXIT_FAILED
        report = json.loads(capsys.readouterr().out)
        assert report["error_count"] == 1
        assert report["diagnostics"][0]["code"] == "E001"

    def test_dialect_option(self, workspace):
        script = write_script(workspace, 'Copy("a", "b", overwrite=false)\n')
        assert main(["check", script]) == EXIT_OK
        assert main(["check", script, "--dialect", "monsterhunterworld"]) == EXIT_FAILED

    def test_missing_file(self, workspace, capsys):
        assert main(["check", str(workspace / "missing.ms")]) == EXIT_FAILED
        assert "File not found" in capsys.readouterr().err

    def test_unknown_dialect(self, workspace, capsys):
        script = write_script(workspace, SCENARIO)
        assert main(["check", script, "--dialect", "skyrim"]) == EXIT_FAILED
        assert "unknown dialect" in capsys.readouterr().err

    def test_bad_config(self, workspace, capsys):
        script = write_script(workspace, SCENARIO)
        config = write_script(workspace, "colour: blue\n", name="settings.yaml")
        assert main(["check", script, "--config", config]) == EXIT_FAILED
        assert "unknown configuration key" in capsys.readouterr().err


class TestFormatCommand:
    """Test `format`."""

    def test_format_keeps_comments(self, workspace, capsys):
        script = write_script(workspace, "# install\nif FileExists(\"a\") then Warn(1) endif\n")
        assert main(["format", script]) == EXIT_OK
        out = capsys.readouterr().out
        assert out == '# install\nif FileExists("a") then\n    Warn(1)\nendif\n'


class TestRunCommand:
    """Test `run`."""

    def test_install(self, workspace, capsys):
        script = write_script(workspace, SCENARIO)
        assert main(run_args(workspace, script, "--yes")) == EXIT_OK
        assert (workspace / "game" / "Data" / "readme.txt").read_text() == "hello"
        assert capsys.readouterr().out.strip() == "success"

    def test_failed_run(self, workspace, capsys):
        script = write_script(workspace, 'Fail("unsupported game")\n')
        assert main(run_args(workspace, script)) == EXIT_FAILED
        captured = capsys.readouterr()
        assert "error[E501]" in captured.err
        assert captured.out.startswith("failed")

    def test_compile_error_runs_nothing(self, workspace):
        script = write_script(workspace, 'Copy("readme.txt", "readme.txt")\nDoStuff()\n')
        assert main(run_args(workspace, script)) == EXIT_FAILED
        assert not (workspace / "game" / "readme.txt").exists()

    def test_interactive_cancel(self, workspace, monkeypatch, capsys):
        script = write_script(
            workspace, 'if Confirm("Install readme?") then Copy("readme.txt", "readme.txt") endif\n'
        )
        monkeypatch.setattr("builtins.input", lambda prompt="": "q")
        assert main(run_args(workspace, script)) == EXIT_ABORTED
        assert not (workspace / "game" / "readme.txt").exists()
        assert capsys.readouterr().out.startswith("aborted")

    def test_interactive_end_of_input_cancels(self, workspace, monkeypatch):
        script = write_script(workspace, 'if Confirm("Go?") then Warn(1) endif\n')

        def no_input(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", no_input)
        assert main(run_args(workspace, script)) == EXIT_ABORTED

    def test_interactive_choice(self, workspace, monkeypatch, capsys):
        script = write_script(workspace, 'Warn(Choose("Quality?", "Low|High"))\n')
        replies = iter(["7", "2"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))
        assert main(run_args(workspace, script)) == EXIT_OK
        assert "High" in capsys.readouterr().err

    def test_loop_limit_from_config(self, workspace, capsys):
        script = write_script(workspace, "n = 0\nwhile true do set n = n + 1 endwhile\n")
        config = write_script(workspace, "max_loop_iterations: 5\n", name="settings.yaml")
        assert main(run_args(workspace, script, "--config", config)) == EXIT_FAILED
        assert "E404" in capsys.readouterr().err

    def test_game_version(self, workspace, capsys):
        script = write_script(workspace, "Warn(GameVersion())\n")
        assert main(run_args(workspace, script, "--game-version", "2.1")) == EXIT_OK
        assert "2.1" in capsys.readouterr().err

    def test_answer_automatically(self):
        assert answer_automatically(PromptRequest("Confirm", PromptKind.CONFIRM, "ok?")) is True
        request = PromptRequest("Choose", PromptKind.CHOICE, "pick", ("a", "b"))
        assert answer_automatically(request) == "a"


class TestDialectsCommand:
    """Test `dialects`."""

    def test_lists_dialects(self, capsys):
        assert main(["dialects"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "monsterhunterworld (grammar 1)" in out
        assert "stateofdecay (grammar 2)" in out
        assert "Copy(source: string, destination: string, overwrite: bool = True) -> void" in out
