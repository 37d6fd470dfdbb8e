import tempfile

from os import path, remove, name as os_name
from shlex import quote
from sys import argv

from .console_process import ConsoleProcess
from .troubleshoot.logger import Logging


class Certificates():

    def __init__(self,config_obj):
        self.log = Logging().logger["main"]
        self.timeouts = config_obj["timeouts"]
        self.cert_timeout = self.timeouts["certificate"]

        # the intermediate key only protects the pfx export
        self.temp_passphrase = "1234"
        self.subject = "/C=FM"
        self.days = 365000


    def _quote(self,value):
        if os_name == "nt":
            return f'"{value}"'
        return quote(value)


    def _get_environment(self):
        # openssl on Windows does not find its configuration without a hint
        if os_name != "nt":
            return None
        openssl_conf = path.join(path.dirname(path.abspath(argv[0])),"openssl.cfg")
        self.log.debug(f"certificates -> using OPENSSL_CONF [{openssl_conf}]")
        return {"OPENSSL_CONF": openssl_conf}


    def generate_pfx_certificate(self,openssl,pfx_file):
        self.log.info(f"certificates -> generating pfx certificate [{pfx_file}] with [{openssl}]")
        result = False
        pfx_file = path.abspath(pfx_file)

        with tempfile.TemporaryDirectory(prefix="iop_cert_") as work_dir:
            key_file = path.join(work_dir,"cert.key")
            cer_file = path.join(work_dir,"cert.cer")

            key_arg, cer_arg, pfx_arg = [self._quote(value) for value in [key_file,cer_file,pfx_file]]
            commands = [
                f'req -x509 -newkey rsa:4096 -keyout {key_arg} -out {cer_arg} -days {self.days} -subj "{self.subject}" -passout pass:{self.temp_passphrase}',
                f'pkcs12 -export -out {pfx_arg} -inkey {key_arg} -in {cer_arg} -passin pass:{self.temp_passphrase} -passout "pass:"',
            ]
            environment = self._get_environment()

            for arguments in commands:
                process = ConsoleProcess(openssl,arguments,timeouts=self.timeouts,environment=environment)
                if not process.run_and_wait_success_exit(self.cert_timeout):
                    self.log.error(f"certificates -> certificate generation step [{process.get_command_line()}] failed with exit code [{process.get_exit_code()}]")
                    break
            else:
                result = path.isfile(pfx_file)

            for temp_file in [key_file,cer_file]:
                if path.isfile(temp_file):
                    remove(temp_file)

        if not result:
            self.log.error(f"certificates -> unable to create [{pfx_file}]")
        return result


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
