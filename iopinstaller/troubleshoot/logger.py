import logging
import time

from os import path, makedirs, environ
from termcolor import cprint
from sys import exit

from logging.handlers import RotatingFileHandler

class Logging():

    def __init__(self,caller="main",config_file=None):
        self.log_file_name = "iop_installer.log"
        self.process_file_name = "iop_installer_process.log"
        self.caller = caller
        self.config_file = config_file if config_file else "installer-config.yaml"

        self.log_path = environ.get("IOP_INSTALLER_LOG_PATH","./Logs/")
        if not self.log_path.endswith("/"):
            self.log_path = f"{self.log_path}/"

        self.full_log_paths = {
            "main": f"{self.log_path}{self.log_file_name}",
            "process": f"{self.log_path}{self.process_file_name}",
        }
        self.level = "INFO"
        self.logger = {
            "main": logging.getLogger("iop_installer"),
            "process": logging.getLogger("iop_installer_process"),
        }

        try:
            self.check_for_log_file()
            self.get_log_level()
            self.log_setup()
        except PermissionError:
            print("  There was an permission error found")
            print("  Does the process have proper elevated permissions?")
            print("  Please verify and try again.")
            exit("permissions error")
        except Exception as e:
            print("  Unknown logging error was found.")
            print("  Please try again.")
            print(f"  Error: {e}")
            exit(1)


    def log_setup(self):
        if self.test_for_handler(): return

        level_mapping = {
            "NOTSET": logging.NOTSET,
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARN": logging.WARN,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL
        }

        for key, log_path in self.full_log_paths.items():
            if self.level in level_mapping:
                self.logger[key].setLevel(level_mapping[self.level])

            formatter = logging.Formatter(
                '%(asctime)s [%(process)d]: %(levelname)s : %(message)s',
                '%b %d %H:%M:%S')
            formatter.converter = time.gmtime

            log_handler = RotatingFileHandler(log_path, maxBytes=8*1024*1024, backupCount=8)

            log_handler.setFormatter(formatter)
            self.logger[key].addHandler(log_handler)

        if self.caller in self.logger:
            self.logger[self.caller].info(f"Logger module initialized with level [{self.level}]")


    def check_for_log_file(self):
        if not path.isdir(self.log_path):
            cprint("  Log path not found, creating log directory for the installer","yellow")
            makedirs(self.log_path)
        for value in self.full_log_paths.values():
            if not path.isfile(value):
                open(value,"a").close()


    def test_for_handler(self):
        found = True
        for logger in self.logger.values():
            if not len(logger.handlers):
                found = False
        return found


    def get_log_level(self):
        if self.test_for_handler(): return

        try:
            with open(self.config_file,"r") as find_level:
                for line in find_level:
                    if "log_level" in line:
                        self.level = line.split(":")[-1].upper()
                        self.level = self.level.strip().strip('"').strip("'")
                        break
        except FileNotFoundError: pass

        levels = ["NOTSET","DEBUG","INFO","WARN","ERROR","CRITICAL"]
        if self.level not in levels: self.level = "INFO"


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
