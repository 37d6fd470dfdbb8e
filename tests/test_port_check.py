import socket
import time

import pytest

from iopinstaller.port_check import PortChecker, PortProbeSession, PortProbeState


def make_checker(config_obj, probe, **extra):
    command_obj = {
        "config_obj": config_obj,
        "probe": probe,
        "public_address": "203.0.113.10",
    }
    command_obj.update(extra)
    return PortChecker(command_obj)


def assert_port_rebindable(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("0.0.0.0", port))


class RecordingProbe:

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def __call__(self, ip_address, port):
        self.calls.append((ip_address, port))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


# =============================
# port probe session
# =============================

def test_session_echoes_first_client(free_port):
    session = PortProbeSession(free_port)
    assert session.state == PortProbeState.CREATED

    session.start()
    assert session.wait_ready(2000)
    assert session.state in (PortProbeState.LISTENER_READY, PortProbeState.ACCEPTING)

    with socket.create_connection(("127.0.0.1", free_port), timeout=5) as client:
        client.sendall(b"ping")
        assert client.recv(1024) == b"ping"

    assert session.close(2000) is True
    assert session.echoed is True
    assert session.state == PortProbeState.CLOSED
    assert session.listener is None


def test_session_serves_only_one_client(free_port):
    session = PortProbeSession(free_port)
    session.start()
    assert session.wait_ready(2000)

    try:
        with socket.create_connection(("127.0.0.1", free_port), timeout=5) as first:
            first.sendall(b"first")
            assert first.recv(1024) == b"first"

        with socket.create_connection(("127.0.0.1", free_port), timeout=0.5) as second:
            second.sendall(b"second")
            with pytest.raises(socket.timeout):
                second.recv(1024)
    finally:
        assert session.close(2000) is True


def test_session_without_echo_closes_client(free_port):
    session = PortProbeSession(free_port, echo=False)
    session.start()
    assert session.wait_ready(2000)

    with socket.create_connection(("127.0.0.1", free_port), timeout=5) as client:
        try:
            data = client.recv(1024)
        except ConnectionResetError:
            data = b""
        assert data == b""

    session.close(2000)
    assert session.echoed is False


def test_session_bind_failure_wakes_caller_early(free_port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupier:
        occupier.bind(("0.0.0.0", free_port))
        occupier.listen()

        session = PortProbeSession(free_port)
        session.start()

        started = time.monotonic()
        assert session.wait_ready(5000) is False
        assert time.monotonic() - started < 2
        assert session.error is not None

        session.close(2000)
        assert session.state == PortProbeState.CLOSED


def test_session_close_without_client_is_prompt(free_port):
    session = PortProbeSession(free_port)
    session.start()
    assert session.wait_ready(2000)

    started = time.monotonic()
    assert session.close(2000) is True
    assert time.monotonic() - started < 2


# =============================
# port checker
# =============================

def test_open_port_reported_and_released(config_obj, free_port):
    probe = RecordingProbe(True)
    checker = make_checker(config_obj, probe)

    assert checker.check_port_open(free_port) is True
    assert probe.calls == [("203.0.113.10", free_port)]
    assert_port_rebindable(free_port)


def test_closed_port_reported_within_bound(config_obj, free_port):
    probe = RecordingProbe(False)
    checker = make_checker(config_obj, probe)

    started = time.monotonic()
    assert checker.check_port_open(free_port) is False
    elapsed = time.monotonic() - started

    limit = (config_obj["timeouts"]["port_ready"] + config_obj["timeouts"]["port_join"]) / 1000
    assert elapsed < limit + 1
    assert_port_rebindable(free_port)


def test_sequential_checks_are_independent(config_obj, free_port):
    probe = RecordingProbe(False, True)
    checker = make_checker(config_obj, probe)

    assert checker.check_port_open(free_port) is False
    assert checker.check_port_open(free_port) is True
    assert len(probe.calls) == 2


def test_probe_exception_counts_as_not_open(config_obj, free_port):
    probe = RecordingProbe(RuntimeError("seed node unreachable"))
    checker = make_checker(config_obj, probe)

    assert checker.check_port_open(free_port) is False
    assert_port_rebindable(free_port)


def test_probe_can_reach_listener(config_obj, free_port):
    received = []

    def loopback_probe(ip_address, port):
        with socket.create_connection(("127.0.0.1", port), timeout=5) as client:
            client.sendall(b"hello")
            received.append(client.recv(1024))
        return True

    checker = make_checker(config_obj, loopback_probe)

    assert checker.check_port_open(free_port) is True
    assert received == [b"hello"]


def test_late_connection_still_finds_listener(config_obj, free_port):
    received = []

    def slow_check(ip_address, port):
        time.sleep(2.5)
        with socket.create_connection(("127.0.0.1", port), timeout=5) as client:
            client.sendall(b"late")
            received.append(client.recv(1024))
        return True

    checker = make_checker(config_obj, slow_check)

    assert checker.check_port_open(free_port) is True
    assert received == [b"late"]


def test_port_in_use_is_not_probed(config_obj, free_port):
    probe = RecordingProbe(True)
    checker = make_checker(config_obj, probe)

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupier:
        occupier.bind(("0.0.0.0", free_port))
        occupier.listen()

        assert checker.check_port_open(free_port) is False

    assert probe.calls == []


def test_listener_not_ready_skips_probe(config_obj, free_port, mocker):
    mocker.patch.object(PortProbeSession, "wait_ready", return_value=False)
    probe = RecordingProbe(True)
    checker = make_checker(config_obj, probe)

    assert checker.check_port_open(free_port) is False
    assert probe.calls == []


@pytest.mark.parametrize("port", [0, -5, 65536])
def test_out_of_range_port_is_not_open(config_obj, port):
    probe = RecordingProbe(True)
    checker = make_checker(config_obj, probe)

    assert checker.check_port_open(port) is False
    assert probe.calls == []


def test_test_mode_skips_high_ports(config_obj):
    config_obj["global_elements"]["test_mode"] = True
    probe = RecordingProbe()
    checker = make_checker(config_obj, probe)

    assert checker.check_port_open(50001) is True
    assert checker.check_port_open(65535) is True
    assert probe.calls == []


@pytest.mark.parametrize("port", [0, 65536, 70000])
def test_test_mode_does_not_accept_invalid_ports(config_obj, port):
    config_obj["global_elements"]["test_mode"] = True
    checker = make_checker(config_obj, RecordingProbe())

    assert checker.check_port_open(port) is False


def test_test_mode_still_checks_threshold_port(config_obj, mocker):
    config_obj["global_elements"]["test_mode"] = True
    probe = RecordingProbe(False)
    checker = make_checker(config_obj, probe)
    session = mocker.patch("iopinstaller.port_check.PortProbeSession")
    session.return_value.wait_ready.return_value = True

    assert checker.check_port_open(50000) is False
    session.assert_called_once_with(50000, True)
    session.return_value.close.assert_called_once_with(config_obj["timeouts"]["port_join"])


def test_high_ports_are_checked_outside_test_mode(config_obj, mocker):
    probe = RecordingProbe(True)
    checker = make_checker(config_obj, probe)
    session = mocker.patch("iopinstaller.port_check.PortProbeSession")
    session.return_value.wait_ready.return_value = True

    assert checker.check_port_open(50001) is True
    assert probe.calls == [("203.0.113.10", 50001)]


def test_default_probe_is_seed_node_check(config_obj, mocker):
    seed_nodes = mocker.Mock()
    checker = PortChecker({"config_obj": config_obj, "seed_nodes": seed_nodes})

    assert checker.probe == seed_nodes.check_port


# =============================
# interactive helpers
# =============================

@pytest.fixture
def functions(mocker):
    functions = mocker.Mock()
    functions.is_valid_ip.side_effect = lambda address: address == "198.51.100.7"
    return functions


def test_check_port_ui_retries_until_open(config_obj, functions, mocker):
    checker = make_checker(config_obj, None, functions=functions)
    mocker.patch.object(checker, "check_port_open", side_effect=[False, True])
    functions.get_user_keypress.return_value = "c"

    assert checker.check_port_open_ui(16987) is True
    functions.get_user_keypress.assert_called_once()


def test_check_port_ui_select_different_port(config_obj, functions, mocker):
    checker = make_checker(config_obj, None, functions=functions)
    check = mocker.patch.object(checker, "check_port_open", return_value=False)
    functions.get_user_keypress.return_value = "s"

    assert checker.check_port_open_ui(16987) is False
    check.assert_called_once_with(16987)


def test_ask_for_open_port_rejects_invalid_input(config_obj, functions, mocker):
    used_ports = {}
    checker = make_checker(config_obj, None, functions=functions, used_ports=used_ports)
    check = mocker.patch.object(checker, "check_port_open_ui", return_value=True)
    functions.get_string_answer.side_effect = ["abc", "70000", "0", "16987"]

    port = checker.ask_for_open_port("Enter port", 16987, "profile server")

    assert port == 16987
    check.assert_called_once_with(16987)
    assert used_ports == {16987: "profile server"}


def test_ask_for_open_port_rejects_used_port(config_obj, functions, mocker):
    used_ports = {16980: "location server"}
    checker = make_checker(config_obj, None, functions=functions, used_ports=used_ports)
    mocker.patch.object(checker, "check_port_open_ui", return_value=True)
    functions.get_string_answer.side_effect = ["16980", "16981"]

    assert checker.ask_for_open_port("Enter port", 16980, "profile server") == 16981
    assert used_ports == {16980: "location server", 16981: "profile server"}


def test_ask_for_open_port_cancel(config_obj, functions, mocker):
    checker = make_checker(config_obj, None, functions=functions)
    check = mocker.patch.object(checker, "check_port_open_ui")
    functions.get_string_answer.return_value = "0"

    assert checker.ask_for_open_port("Enter port", 16987, "profile server", allow_cancel=True) == 0
    check.assert_not_called()


def test_ask_for_open_port_retries_closed_port(config_obj, functions, mocker):
    checker = make_checker(config_obj, None, functions=functions)
    mocker.patch.object(checker, "check_port_open_ui", side_effect=[False, True])
    functions.get_string_answer.side_effect = ["16987", "16988"]

    assert checker.ask_for_open_port("Enter port", 16987, "profile server") == 16988


def test_ask_for_external_ip_uses_detected_default(config_obj, functions, mocker):
    seed_nodes = mocker.Mock()
    seed_nodes.find_external_ip.return_value = "198.51.100.7"
    checker = PortChecker({"config_obj": config_obj, "functions": functions, "seed_nodes": seed_nodes})
    functions.get_string_answer.side_effect = ["not-an-ip", "198.51.100.7"]

    assert checker.ask_for_external_ip() == "198.51.100.7"
    assert checker.public_address == "198.51.100.7"
    assert functions.event is False
    prompt = functions.get_string_answer.call_args_list[0].args[0]
    assert prompt["default"] == "198.51.100.7"
