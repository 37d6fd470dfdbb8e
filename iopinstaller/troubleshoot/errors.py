from sys import exit
from types import SimpleNamespace

from .logger import Logging

# glossary of line_code
# =======================

# cert_failure
# config_error
#     format
#     existence
# input_error
# invalid_port
# invalid_tcp_ports
# ip_not_found
# process_failure
# unknown_error


class Error_codes():

    def __init__(self,functions,debug=False):
        self.log = Logging().logger["main"]
        self.debug = debug
        self.functions = functions


    def error_code_messages(self,command_obj):
        var = SimpleNamespace(**command_obj)
        var.line_code = command_obj.get("line_code","unknown_error")
        var.extra = command_obj.get("extra",False)
        var.extra2 = command_obj.get("extra2",False)

        self.error_code = var.error_code
        self.line_code = var.line_code
        self.print_error("start")

        if self.debug:
            print("error debugs:",var.error_code,var.line_code,var.extra,var.extra2)
            return

        if var.line_code == "invalid_port":
            self.log.error(f"invalid port requested [{var.extra}] | error code: [{var.error_code}]")
            self.functions.print_paragraphs([
                [f"'{var.extra}'",0,"yellow","bold"], ["is not a valid port number.",2,"red"],
                ["The port has to be an integer between",0], ["1",0,"yellow"], ["and",0], ["65535",0,"yellow"],
                ["please try again.",2],
            ])

        elif var.line_code == "invalid_tcp_ports":
            self.log.error(f"tcp port [{var.extra}] could not be verified as reachable | error code: [{var.error_code}]")
            self.functions.print_paragraphs([
                ["TCP port",0,"red","bold"], [str(var.extra),0,"yellow","bold"],
                ["is not reachable from the Internet or could not be verified.",2,"red","bold"],

                ["Suggestion:",0,"yellow","bold"], ["Verify the port is opened on your firewall and forwarded to this machine.",2],
                ["Suggestion:",0,"yellow","bold"], ["Verify no other service is already listening on this port.",2],
            ])

        elif var.line_code == "ip_not_found":
            self.log.critical(f"unable to determine the external ip address of this machine | error code: [{var.error_code}]")
            self.functions.print_paragraphs([
                ["Unable to determine the external IP address of this machine.",2,"red","bold"],
                ["None of the seed nodes answered with a valid IP address.",1],
                ["Suggestion:",0,"yellow","bold"], ["Verify network connectivity and try again.",2],
            ])

        elif var.line_code == "process_failure":
            self.log.critical(f"external process [{var.extra}] failed [{var.extra2}] | error code: [{var.error_code}]")
            self.functions.print_paragraphs([
                ["An external program did not finish successfully.",2,"red","bold"],
                ["Command:",0,"yellow","bold"], [str(var.extra),2],
            ])
            if var.extra2:
                self.functions.print_paragraphs([
                    ["Error Message:",0,"yellow","bold"], [str(var.extra2),2,"red"],
                ])

        elif var.line_code == "cert_failure":
            self.log.critical(f"certificate generation failed for [{var.extra}] | error code: [{var.error_code}]")
            self.functions.print_paragraphs([
                ["Unable to generate the TLS certificate.",2,"red","bold"],
                ["Suggestion:",0,"yellow","bold"], ["Verify",0], ["openssl",0,"yellow"],
                ["is installed and the output directory is writable.",2],
                ["Certificate File:",0,"yellow","bold"], [str(var.extra),2],
            ])

        elif var.line_code == "config_error":
            self.log.critical(f"configuration file error [{var.extra}] [{var.extra2}] | error code: [{var.error_code}]")
            self.functions.print_paragraphs([
                ["The installer configuration could not be loaded.",2,"red","bold"],
                ["Configuration File:",0,"yellow","bold"], [str(var.extra),1],
            ])
            if var.extra2:
                self.functions.print_paragraphs([
                    ["Error Message:",0,"yellow","bold"], [str(var.extra2),2,"red"],
                ])

        elif var.line_code == "input_error":
            self.log.error(f"invalid command line input [{var.extra}] | error code: [{var.error_code}]")
            self.functions.print_paragraphs([
                ["Invalid or missing command line input detected.",1,"red","bold"],
                ["Option:",0,"yellow","bold"], [str(var.extra),2],
                ["Use",0], ["help",0,"yellow"], ["to review the usage.",2],
            ])

        else:
            self.log.critical(f"unknown error [{var.extra}] | error code: [{var.error_code}]")
            self.functions.print_paragraphs([
                ["An unknown error occurred.",2,"red","bold"],
                ["Error Message:",0,"yellow","bold"], [str(var.extra),2,"red"],
            ])

        self.print_error("end")


    def print_error(self,section):
        if section == "start":
            self.functions.print_paragraphs([
                ["",1], [" ERROR ",0,"yellow,on_red","bold"], ["code:",0,"red"],
                [str(self.error_code),0,"yellow","bold"], ["occurred",2,"red"],
            ])
            return

        self.functions.print_paragraphs([
            ["Installer terminated",1,"red","bold"],
        ])
        exit(1)


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
