from os import path
from shlex import quote
from termcolor import colored, cprint

from .certificates import Certificates
from .config.config import Configuration
from .console_process import ConsoleProcess
from .functions import Functions
from .port_check import PortChecker
from .seed_nodes import SeedNodes
from .troubleshoot.errors import Error_codes
from .troubleshoot.logger import Logging


class ShellHandler:

    def __init__(self,argv_list):
        self.argv_list = list(argv_list)
        self.child_args = []
        if len(self.argv_list) > 1 and self.argv_list[1] == "run":
            self.argv_list, self.child_args = self._split_run_arguments(self.argv_list)

        self.config_file = self._get_option("--config","installer-config.yaml")

        self.log = Logging("main",self.config_file).logger["main"]

        self.functions = Functions({})
        self.error_messages = Error_codes(self.functions)

        config = Configuration({
            "argv_list": self.argv_list,
            "config_file": self.config_file,
            "functions": self.functions,
        })
        self.config_obj = config.config_obj
        self.functions.config_obj = self.config_obj
        self.test_mode = self.config_obj["global_elements"]["test_mode"]

        self.used_ports = {}
        self.seed_nodes = SeedNodes(self.config_obj)
        self.port_checker = PortChecker({
            "config_obj": self.config_obj,
            "functions": self.functions,
            "seed_nodes": self.seed_nodes,
            "used_ports": self.used_ports,
        })

        self.commands = {
            "check_port": self.cli_check_port,
            "select_port": self.cli_select_port,
            "external_ip": self.cli_external_ip,
            "run": self.cli_run_process,
            "gen_cert": self.cli_gen_cert,
            "help": self.print_help,
        }


    def _split_run_arguments(self,argv_list):
        # installer options precede the executable, everything from the executable on belongs to it
        options_with_value = ["-t","--config"]
        installer_args = argv_list[:2]
        position = 2

        while position < len(argv_list):
            item = argv_list[position]
            if item == "--":
                position += 1
                break
            if item in options_with_value:
                installer_args += argv_list[position:position+2]
                position += 2
            elif item == "test_mode":
                installer_args.append(item)
                position += 1
            else:
                break

        return installer_args, argv_list[position:]


    def _get_option(self,option,default=None):
        if option in self.argv_list:
            try:
                return self.argv_list[self.argv_list.index(option)+1]
            except IndexError:
                return default
        return default


    def _get_int_option(self,option,default,line_code="input_error"):
        value = self._get_option(option,default)
        try:
            return int(value)
        except (TypeError,ValueError):
            self.error_messages.error_code_messages({
                "error_code": "sh-71",
                "line_code": line_code,
                "extra": f"{option} {value}",
            })


    def start_cli(self):
        command = self.argv_list[1] if len(self.argv_list) > 1 else "help"
        self.log.info(f"shell_handler -> command [{command}] requested")

        if self.test_mode:
            self.functions.print_paragraphs([
                ["",1], ["Test mode ENABLED.",0,"yellow","bold"],
                [f"In test mode you can skip the port check by using port values between {self.config_obj['port_check']['test_mode_threshold']+1} and 65535.",2,"yellow"],
            ])

        if command not in self.commands:
            self.error_messages.error_code_messages({
                "error_code": "sh-92",
                "line_code": "input_error",
                "extra": command,
            })

        return self.commands[command]()


    def cli_check_port(self):
        if "-p" not in self.argv_list:
            self.error_messages.error_code_messages({
                "error_code": "sh-102",
                "line_code": "input_error",
                "extra": "-p <port>",
            })

        port = self._get_int_option("-p",None,"invalid_port")
        if not 0 < port <= 65535:
            self.error_messages.error_code_messages({
                "error_code": "sh-110",
                "line_code": "invalid_port",
                "extra": port,
            })

        self.functions.print_header_title({
            "line1": "TCP PORT CHECK",
            "single_line": True,
            "newline": "both",
        })

        if not self.test_mode or port <= self.config_obj["port_check"]["test_mode_threshold"]:
            self.port_checker.ask_for_external_ip()

        if not self.port_checker.check_port_open_ui(port):
            self.error_messages.error_code_messages({
                "error_code": "sh-126",
                "line_code": "invalid_tcp_ports",
                "extra": port,
            })

        cprint(f"  TCP port {port} is reachable from the Internet","green",attrs=["bold"])
        return 0


    def cli_select_port(self):
        default = self._get_int_option("-d",16987)
        service_name = self._get_option("-s","profile server")

        self.functions.print_header_title({
            "line1": "TCP PORT SELECTION",
            "single_line": True,
            "newline": "both",
        })
        self.port_checker.ask_for_external_ip()

        port = self.port_checker.ask_for_open_port(
            f"Enter TCP port for the {service_name}, or 0 to cancel",
            default,
            service_name,
            allow_cancel=True,
        )

        if port == 0:
            cprint("  Port selection cancelled","yellow")
            return 1

        self.functions.print_cmd_status({
            "text_start": "Selected port",
            "brackets": service_name,
            "status": str(port),
            "status_color": "green",
            "newline": True,
        })
        return 0


    def cli_external_ip(self):
        self.functions.print_header_title({
            "line1": "EXTERNAL IP ADDRESS",
            "single_line": True,
            "newline": "both",
        })
        if "--auto" in self.argv_list:
            ip_address = self.seed_nodes.find_external_ip()
            if ip_address is None:
                self.error_messages.error_code_messages({
                    "error_code": "sh-181",
                    "line_code": "ip_not_found",
                })
            self.port_checker.public_address = ip_address
        else:
            ip_address = self.port_checker.ask_for_external_ip()

        self.functions.print_cmd_status({
            "text_start": "External IP address",
            "status": ip_address,
            "status_color": "green",
            "newline": True,
        })
        return 0


    def cli_run_process(self):
        args = self.child_args
        if not args:
            self.error_messages.error_code_messages({
                "error_code": "sh-196",
                "line_code": "input_error",
                "extra": "run [-t <timeout ms>] [--] <executable> [arguments]",
            })

        timeout = self._get_int_option("-t",self.config_obj["timeouts"]["process_wait"])
        executable = args[0]
        arguments = " ".join(quote(arg) for arg in args[1:])

        process = ConsoleProcess(executable,arguments,timeouts=self.config_obj["timeouts"])
        status_obj = {
            "text_start": "Running",
            "brackets": process.get_command_line(),
            "status": "running",
        }
        self.functions.print_cmd_status(status_obj)

        if not process.start():
            self.functions.print_cmd_status({**status_obj,"status": "failed","newline": True})
            self.error_messages.error_code_messages({
                "error_code": "sh-214",
                "line_code": "process_failure",
                "extra": process.get_command_line(),
                "extra2": "unable to start the process",
            })

        finished = process.wait_exit(timeout)
        self.functions.print_cmd_status({
            **status_obj,
            "status": "complete" if finished else "failed",
            "newline": True,
        })

        for line in process.get_output():
            print(f"  {colored('|','magenta')} {line}")

        if not finished:
            self.error_messages.error_code_messages({
                "error_code": "sh-233",
                "line_code": "process_failure",
                "extra": process.get_command_line(),
                "extra2": f"process did not finish within {timeout}ms and was terminated",
            })

        exit_code = process.get_exit_code()
        self.functions.print_cmd_status({
            "text_start": "Process exit code",
            "status": str(exit_code),
            "status_color": "green" if exit_code == 0 else "red",
            "newline": True,
        })
        return exit_code


    def cli_gen_cert(self):
        pfx_file = self._get_option("-o")
        openssl = self._get_option("--openssl","openssl")
        if pfx_file is None:
            self.error_messages.error_code_messages({
                "error_code": "sh-257",
                "line_code": "input_error",
                "extra": "-o <pfx_file>",
            })

        if path.isfile(pfx_file):
            if not self.functions.confirm_action({
                "yes_no_default": "n",
                "return_on": "y",
                "prompt": f"{pfx_file} already exists, overwrite it?",
                "exit_if": False,
            }):
                cprint("  Certificate generation cancelled","yellow")
                return 1

        status_obj = {
            "text_start": "Generating certificate",
            "brackets": pfx_file,
            "status": "running",
        }
        self.functions.print_cmd_status(status_obj)

        certificates = Certificates(self.config_obj)
        if not certificates.generate_pfx_certificate(openssl,pfx_file):
            self.functions.print_cmd_status({**status_obj,"status": "failed","newline": True})
            self.error_messages.error_code_messages({
                "error_code": "sh-285",
                "line_code": "cert_failure",
                "extra": pfx_file,
            })

        self.functions.print_cmd_status({**status_obj,"status": "ok","newline": True})
        return 0


    def print_help(self):
        self.functions.print_header_title({
            "line1": "IOP NODE INSTALLER",
            "line2": self.functions.installer_version,
        })
        self.functions.print_paragraphs([
            ["",1], ["usage:",0,"yellow","bold"], ["main.py <command> [options] [test_mode] [--config <file>]",2],

            ["check_port -p <port>",1,"magenta","bold"],
            ["verify the TCP port can be reached from the Internet through the seed nodes.",2],

            ["select_port [-d <default>] [-s <service name>]",1,"magenta","bold"],
            ["interactively select an open TCP port for a service.",2],

            ["external_ip [--auto]",1,"magenta","bold"],
            ["detect and confirm the external IP address of this machine. With --auto the detected address is used without a prompt.",2],

            ["run [-t <timeout ms>] [--] <executable> [arguments]",1,"magenta","bold"],
            ["run an external program, kill it on timeout and show its output. Installer options go before the executable.",2],

            ["gen_cert -o <pfx file> [--openssl <path>]",1,"magenta","bold"],
            ["generate a self signed PFX certificate with openssl.",2],

            ["test_mode",0,"yellow","bold"],
            [f"treats ports above {self.config_obj['port_check']['test_mode_threshold']} as open without checking them.",2],
        ])
        return 0


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
