import subprocess
import threading
import psutil

from enum import Enum
from os import environ, linesep, name as os_name
from shlex import split as shlexsplit

from .troubleshoot.logger import Logging


class ConsoleProcessStatus(Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    FINISHED = "finished"


class ConsoleProcess():

    def __init__(self,executable,arguments=None,input_data=None,timeouts=None,environment=None):
        self.log = Logging("process").logger["process"]

        timeouts = timeouts if timeouts else {}
        self.wait_timeout = timeouts.get("process_wait",15000)
        self.success_wait_timeout = timeouts.get("process_success_wait",5000)
        self.reader_join_timeout = 2
        self.reap_timeout = 5

        self.executable = executable
        self.arguments = arguments
        self.input_data = self._encode_input(input_data)
        self.environment = environment

        self.process = None
        self.readers = []
        self.output_data = []
        self.output_lock = threading.Lock()
        self.exit_code = -1
        self.timed_out = False
        self.status = ConsoleProcessStatus.INITIALIZED


    def _encode_input(self,input_data):
        if input_data is None:
            return None
        if isinstance(input_data,(list,tuple)):
            input_data = linesep.join(input_data)
        if isinstance(input_data,str):
            input_data = input_data.encode("utf-8")
        return input_data


    def _build_args(self):
        if os_name == "nt":
            executable = subprocess.list2cmdline([self.executable])
            return f"{executable} {self.arguments}" if self.arguments else executable

        args = [self.executable]
        if self.arguments:
            args += shlexsplit(self.arguments)
        return args


    def _build_environment(self):
        if not self.environment:
            return None
        return {**environ,**self.environment}


    def _read_stream(self,stream):
        # stdout and stderr share one list, so lines keep their arrival order
        try:
            for raw_line in iter(stream.readline,b""):
                line = raw_line.decode("utf-8",errors="replace").rstrip("\r\n")
                with self.output_lock:
                    self.output_data.append(line)
        except (OSError,ValueError) as e:
            self.log.debug(f"console_process -> output reader for [{self.executable}] stopped with [{e}]")
        finally:
            stream.close()


    def _join_readers(self):
        for reader in self.readers:
            reader.join(self.reader_join_timeout)
            if reader.is_alive():
                self.log.warning(f"console_process -> output reader of [{self.executable}] did not finish on time")


    def _reap(self):
        try:
            self.process.wait(timeout=self.reap_timeout)
        except Exception as e:
            self.log.error(f"console_process -> unable to reap [{self.get_command_line()}] after kill [{e}]")


    def start(self):
        self.log.debug(f"console_process -> starting process [{self.get_command_line()}]")
        result = False

        self.output_data = []
        self.readers = []

        try:
            self.process = subprocess.Popen(
                self._build_args(),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self._build_environment(),
            )
            self.status = ConsoleProcessStatus.RUNNING
            self.log.debug(f"console_process -> process is running with pid [{self.process.pid}]")

            for stream in [self.process.stdout,self.process.stderr]:
                reader = threading.Thread(target=self._read_stream,args=(stream,),daemon=True)
                reader.start()
                self.readers.append(reader)

            try:
                if self.input_data:
                    self.process.stdin.write(self.input_data)
                    self.process.stdin.flush()
                self.process.stdin.close()
            except BrokenPipeError:
                self.log.debug(f"console_process -> [{self.executable}] closed its input, input not delivered")
                try:
                    self.exit_code = self.process.wait(timeout=self.reap_timeout)
                except subprocess.TimeoutExpired:
                    self.log.warning(f"console_process -> [{self.get_command_line()}] still running after closing its input, terminating")
                    self.kill()
                    self._reap()
                self._join_readers()
                self.status = ConsoleProcessStatus.FINISHED

            result = True
        except Exception as e:
            self.log.error(f"console_process -> unable to start [{self.get_command_line()}] error [{e}]")
            if self.status == ConsoleProcessStatus.RUNNING:
                self.kill()
            self.status = ConsoleProcessStatus.FINISHED

        return result


    def kill(self):
        try:
            if self.process.poll() is not None:
                return
            parent = psutil.Process(self.process.pid)
            for child in parent.children(recursive=True):
                child.kill()
            parent.kill()
            self.log.debug(f"console_process -> killed [{self.get_command_line()}] pid [{self.process.pid}]")
        except Exception as e:
            # the process may have exited in the meantime
            self.log.debug(f"console_process -> kill request ignored [{e}]")


    def wait_exit(self,timeout_ms=None):
        timeout_ms = self.wait_timeout if timeout_ms is None else timeout_ms
        result = False
        if self.status != ConsoleProcessStatus.RUNNING:
            return result

        self.timed_out = False
        try:
            self.exit_code = self.process.wait(timeout=timeout_ms/1000)
            result = True
        except subprocess.TimeoutExpired:
            self.timed_out = True
            self.log.warning(f"console_process -> [{self.get_command_line()}] did not finish within [{timeout_ms}ms], terminating")
        except Exception as e:
            self.log.error(f"console_process -> waiting for [{self.get_command_line()}] failed with [{e}]")

        if not result:
            self.kill()
            self._reap()

        self._join_readers()
        self.status = ConsoleProcessStatus.FINISHED
        return result


    def wait_success_exit(self,timeout_ms=None):
        timeout_ms = self.success_wait_timeout if timeout_ms is None else timeout_ms
        result = False

        if self.wait_exit(timeout_ms):
            result = self.has_success_exit_code()
            if not result:
                output = "\n".join(self.output_data)
                self.log.warning(f"console_process -> process exit code was [{self.exit_code}], its output follows:\n---------------------------------\n{output}\n---------------------------------")

        return result


    def run_and_wait_success_exit(self,timeout_ms=None):
        return self.start() and self.wait_success_exit(timeout_ms)


    def get_output(self):
        with self.output_lock:
            return list(self.output_data)


    def get_exit_code(self):
        return self.exit_code


    def get_pid(self):
        return self.process.pid if self.process else None


    def has_success_exit_code(self):
        return self.exit_code == 0


    def get_command_line(self):
        return f"{self.executable} {self.arguments}" if self.arguments else self.executable


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
