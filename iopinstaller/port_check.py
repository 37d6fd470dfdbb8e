import select
import socket
import struct
import threading

from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from time import sleep

from .troubleshoot.logger import Logging


class PortProbeState(Enum):
    CREATED = "created"
    LISTENER_STARTING = "listener_starting"
    LISTENER_READY = "listener_ready"
    ACCEPTING = "accepting"
    CLOSED = "closed"


class PortProbeSession():

    def __init__(self,port,echo=True):
        self.log = Logging().logger["main"]

        self.port = port
        self.echo = echo
        self.buffer_size = 1024
        self.client_timeout = 5
        self.echo_pause = 0.1

        self.ready_event = threading.Event()
        self.shutdown_event = threading.Event()
        self.wake_recv, self.wake_send = socket.socketpair()

        self.state = PortProbeState.CREATED
        self.listener = None
        self.thread = None
        self.error = None
        self.echoed = False


    def start(self):
        self.state = PortProbeState.LISTENER_STARTING
        self.thread = threading.Thread(
            target=self._listener_thread,
            name=f"port_listener_{self.port}",
            daemon=True,
        )
        self.thread.start()


    def wait_ready(self,timeout_ms):
        # the event is also set when the listener fails to bind
        return self.ready_event.wait(timeout_ms/1000) and self.error is None


    def request_shutdown(self):
        self.shutdown_event.set()
        try:
            self.wake_send.send(b"\0")
        except OSError as e:
            self.log.debug(f"port_check -> wake up of listener on port [{self.port}] not delivered [{e}]")


    def close(self,join_timeout_ms):
        self.request_shutdown()

        finished = True
        if self.thread is not None:
            self.thread.join(join_timeout_ms/1000)
            finished = not self.thread.is_alive()
            if not finished:
                self.log.error(f"port_check -> port listener thread on port [{self.port}] failed to finish on time")

        self._close_listener()
        for wake_socket in [self.wake_recv,self.wake_send]:
            wake_socket.close()
        self.state = PortProbeState.CLOSED
        return finished


    def _create_listener(self):
        listener = socket.socket(socket.AF_INET,socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET,socket.SO_REUSEADDR,1)
            listener.setsockopt(socket.SOL_SOCKET,socket.SO_LINGER,struct.pack("ii",1,0))
            listener.bind(("0.0.0.0",self.port))
            listener.listen()
        except OSError:
            listener.close()
            raise
        return listener


    def _close_listener(self):
        listener, self.listener = self.listener, None
        if listener is not None:
            self.log.debug(f"port_check -> stopping listener on port [{self.port}]")
            listener.close()


    def _listener_thread(self):
        self.log.debug(f"port_check -> listener thread starting on port [{self.port}]")
        try:
            self.listener = self._create_listener()
        except (OSError,OverflowError) as e:
            self.error = e
            self.log.error(f"port_check -> unable to listen on port [{self.port}] error [{e}]")
            self.state = PortProbeState.CLOSED
            self.ready_event.set()
            return

        self.state = PortProbeState.LISTENER_READY
        self.ready_event.set()

        try:
            self._accept_loop()
        except Exception as e:
            self.log.error(f"port_check -> listener on port [{self.port}] errored out with [{e}]")
        finally:
            self._close_listener()
            self.state = PortProbeState.CLOSED

        self.log.debug(f"port_check -> listener thread on port [{self.port}] finished")


    def _accept_loop(self):
        self.state = PortProbeState.ACCEPTING
        watched = [self.listener,self.wake_recv]

        while not self.shutdown_event.is_set():
            self.log.debug(f"port_check -> waiting for new client on port [{self.port}]")
            # no timeout, only the wake socket ends the wait
            readable, _, _ = select.select(watched,[],[])

            if self.shutdown_event.is_set() or self.wake_recv in readable:
                self.log.debug(f"port_check -> shutdown event detected on port [{self.port}]")
                break

            self._serve_client()
            # one client per probe, afterwards only the shutdown request is awaited
            watched = [self.wake_recv]


    def _serve_client(self):
        client = None
        try:
            client, address = self.listener.accept()
            self.log.debug(f"port_check -> client connected from [{address[0]}:{address[1]}] on port [{self.port}]")
            if not self.echo:
                return

            client.setsockopt(socket.IPPROTO_TCP,socket.TCP_NODELAY,1)
            client.settimeout(self.client_timeout)
            data = client.recv(self.buffer_size)
            if data:
                self.log.debug(f"port_check -> received [{len(data)}] bytes of data:\n{data.decode('utf-8',errors='replace')}")
                client.sendall(data)
                sleep(self.echo_pause)
                self.echoed = True
            else:
                self.log.debug("port_check -> connection to client has been terminated")
        except OSError as e:
            self.log.error(f"port_check -> serving client on port [{self.port}] failed with [{e}]")
        finally:
            if client is not None:
                client.close()


class PortChecker():

    def __init__(self,command_obj):
        self.log = Logging().logger["main"]

        config_obj = command_obj["config_obj"]
        self.functions = command_obj.get("functions")
        self.seed_nodes = command_obj.get("seed_nodes")
        self.probe = command_obj.get("probe")
        if self.probe is None and self.seed_nodes is not None:
            self.probe = self.seed_nodes.check_port

        self.public_address = command_obj.get("public_address")
        self.used_ports = command_obj.get("used_ports",{})

        self.test_mode = config_obj["global_elements"]["test_mode"]
        self.test_mode_threshold = config_obj["port_check"]["test_mode_threshold"]
        self.echo = config_obj["port_check"]["echo"]
        self.ready_timeout = config_obj["timeouts"]["port_ready"]
        self.join_timeout = config_obj["timeouts"]["port_join"]


    def check_port_open(self,port):
        result = False

        if not 0 < port <= 65535:
            self.log.error(f"port_check -> port [{port}] is out of range")
            return result

        if self.test_mode and port > self.test_mode_threshold:
            self.log.info(f"port_check -> test mode enabled, port [{port}] treated as open without a check")
            return True

        session = None
        try:
            session = PortProbeSession(port,self.echo)
            session.start()

            if session.wait_ready(self.ready_timeout):
                self.log.info(f"port_check -> asking probe to connect to [{self.public_address}:{port}]")
                result = bool(self.probe(self.public_address,port))
            else:
                self.log.error(f"port_check -> port listener on port [{port}] did not get ready on time [{session.error}]")
        except Exception as e:
            self.log.error(f"port_check -> checking port [{port}] errored out with [{e}]")
            result = False
        finally:
            if session is not None:
                session.close(self.join_timeout)

        self.log.info(f"port_check -> port [{port}] open [{result}]")
        return result


    def check_port_open_ui(self,port):
        result = False

        while True:
            status_obj = {
                "text_start": "Checking TCP port from the Internet",
                "brackets": f"{self.public_address}:{port}",
                "status": "running",
            }
            self.functions.print_cmd_status(status_obj)

            if self.check_port_open(port):
                self.functions.print_cmd_status({
                    **status_obj,
                    "status": "ok",
                    "newline": True,
                })
                result = True
                break

            self.functions.print_cmd_status({
                **status_obj,
                "status": "failed",
                "newline": True,
            })
            self.functions.print_paragraphs([
                ["TCP port",0,"red"], [str(port),0,"yellow","bold"],
                ["is not open or an error occurred.",1,"red"],
            ])
            choice = self.functions.get_user_keypress({
                "prompt": "How would you like to proceed? [C]HECK AGAIN / [s]elect different port",
                "prompt_color": "magenta",
                "options": ["c","s"],
            })
            if choice == "s":
                break

        print("")
        return result


    def ask_for_open_port(self,message,default,service_name,allow_cancel=False):
        result = 0

        while True:
            answer = self.functions.get_string_answer({
                "prompt": message,
                "default": str(default),
            })

            try:
                port = int(answer)
            except ValueError:
                port = None

            if port is not None and 0 < port <= 65535:
                if port in self.used_ports:
                    self.log.error(f"port_check -> port [{port}] is already used for [{self.used_ports[port]}]")
                    self.functions.print_paragraphs([
                        [" ERROR ",0,"yellow,on_red","bold"], ["Port",0,"red"], [str(port),0,"yellow","bold"],
                        ["is already used by",0,"red"], [self.used_ports[port],0,"yellow","bold"],
                        ["please try a different port.",1,"red"],
                    ])
                    continue

                if self.check_port_open_ui(port):
                    self.used_ports[port] = service_name
                    result = port
                    break
                self.log.warning(f"port_check -> port [{port}] is not open")

            elif allow_cancel and answer == "0":
                self.log.debug("port_check -> port selection cancelled")
                break

            else:
                self.log.error(f"port_check -> invalid port number entered [{answer}]")
                self.functions.print_paragraphs([
                    [" ERROR ",0,"yellow,on_red","bold"], [f"'{answer}'",0,"yellow","bold"],
                    ["is not a valid port number. It has to be an integer between 1 and 65535, please try again.",1,"red"],
                ])

        return result


    def ask_for_external_ip(self):
        detected = None

        if self.seed_nodes is not None:
            with ThreadPoolExecutor() as executor:
                self.functions.event = True
                _ = executor.submit(self.functions.print_spinner,{
                    "msg": "Trying to find out your external IP address",
                    "color": "magenta",
                })
                try:
                    detected = self.seed_nodes.find_external_ip()
                finally:
                    self.functions.event = False

        self.functions.print_cmd_status({
            "text_start": "External IP address detection",
            "status": "ok" if detected else "failed",
            "newline": True,
        })

        while True:
            answer = self.functions.get_string_answer({
                "prompt": "Enter external IP address of this machine",
                "default": detected if detected else "",
            })
            if self.functions.is_valid_ip(answer):
                self.public_address = answer
                break

            self.log.error(f"port_check -> invalid ip address entered [{answer}]")
            self.functions.print_paragraphs([
                [" ERROR ",0,"yellow,on_red","bold"], [f"'{answer}'",0,"yellow","bold"],
                ["is not a valid IP address, please try again.",1,"red"],
            ])

        self.log.info(f"port_check -> external ip address set to [{self.public_address}]")
        return self.public_address


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
