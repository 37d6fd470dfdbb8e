import pytest

from iopinstaller.config.config import Configuration, default_config
from iopinstaller.functions import Functions


def load(config_file, argv_list=None):
    return Configuration({
        "argv_list": argv_list if argv_list else ["main.py", "help"],
        "config_file": str(config_file),
        "functions": Functions({}),
    }).config_obj


def test_defaults_without_config_file(tmp_path):
    config_obj = load(tmp_path / "missing.yaml")

    assert config_obj == default_config
    assert config_obj is not default_config


def test_yaml_values_override_defaults(tmp_path):
    config_file = tmp_path / "installer-config.yaml"
    config_file.write_text(
        "global_elements:\n"
        "  log_level: DEBUG\n"
        "timeouts:\n"
        "  http: 3\n"
        "  port_ready: 1000\n"
        "seed_nodes:\n"
        "  - http://seed.example.com:9090\n"
    )

    config_obj = load(config_file)

    assert config_obj["global_elements"]["log_level"] == "DEBUG"
    assert config_obj["global_elements"]["test_mode"] is False
    assert config_obj["timeouts"]["http"] == 3
    assert config_obj["timeouts"]["port_ready"] == 1000
    assert config_obj["timeouts"]["port_join"] == 10000
    assert config_obj["seed_nodes"] == ["http://seed.example.com:9090"]


def test_empty_config_file_uses_defaults(tmp_path):
    config_file = tmp_path / "installer-config.yaml"
    config_file.write_text("")

    assert load(config_file) == default_config


def test_test_mode_from_command_line(tmp_path):
    config_obj = load(tmp_path / "missing.yaml", ["main.py", "check_port", "-p", "50001", "test_mode"])

    assert config_obj["global_elements"]["test_mode"] is True


def test_test_mode_from_config_file(tmp_path):
    config_file = tmp_path / "installer-config.yaml"
    config_file.write_text("global_elements:\n  test_mode: true\n")

    assert load(config_file)["global_elements"]["test_mode"] is True


@pytest.mark.parametrize("content", [
    "timeouts: [1, 2\n",
    "- just\n- a list\n",
    "timeouts:\n  process_wait: soon\n",
    "timeouts:\n  port_join: 0\n",
    "port_check:\n  test_mode_threshold: 70000\n",
    "port_check:\n  echo: maybe\n",
    "seed_nodes: []\n",
    "seed_nodes:\n  - not a url\n",
])
def test_invalid_configuration_terminates(tmp_path, content, capsys):
    config_file = tmp_path / "installer-config.yaml"
    config_file.write_text(content)

    with pytest.raises(SystemExit) as excinfo:
        load(config_file)

    assert excinfo.value.code == 1
    assert "Installer terminated" in capsys.readouterr().out
