import os
import socket
from copy import deepcopy

import pytest

from iopinstaller.config.config import default_config


@pytest.fixture(scope="session", autouse=True)
def isolated_log_path(tmp_path_factory):
    """Keeps the installer log files out of the working directory."""
    log_path = tmp_path_factory.mktemp("logs")
    previous = os.environ.get("IOP_INSTALLER_LOG_PATH")
    os.environ["IOP_INSTALLER_LOG_PATH"] = str(log_path)
    yield log_path
    if previous is None:
        os.environ.pop("IOP_INSTALLER_LOG_PATH", None)
    else:
        os.environ["IOP_INSTALLER_LOG_PATH"] = previous


@pytest.fixture
def config_obj():
    config = deepcopy(default_config)
    config["timeouts"]["port_ready"] = 2000
    config["timeouts"]["port_join"] = 2000
    return config


@pytest.fixture
def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("0.0.0.0", 0))
        return sock.getsockname()[1]
