from sys import argv, exit
from termcolor import colored
from iopinstaller.shell_handler import ShellHandler
from iopinstaller.troubleshoot.logger import Logging


def cli_commands(argv_list=None):
    argv_list = list(argv if argv_list is None else argv_list)

    try:
        _ = argv_list[1]
    except IndexError:
        argv_list = [argv_list[0] if argv_list else "main.py","help"]

    try:
        current_shell = ShellHandler(argv_list)
        return_code = current_shell.start_cli()
    except KeyboardInterrupt:
        keyboardInterrupt()

    exit(return_code)


def keyboardInterrupt():
    log = Logging()
    log.logger["main"].critical("user terminated the installer prematurely with keyboard interrupt")
    print("")
    print(colored("  user terminating installer prematurely","red"))
    exit(1)


if __name__ == "__main__":
    cli_commands(argv)
