import yaml
import validators

from copy import deepcopy
from os import path

from ..functions import Functions
from ..troubleshoot.errors import Error_codes
from ..troubleshoot.logger import Logging


default_config = {
    "global_elements": {
        "log_level": "INFO",
        "test_mode": False,
    },
    "seed_nodes": [
        "http://ham1.fermat.cloud:9090",
        "http://ham2.fermat.cloud:9090",
        "http://ham3.fermat.cloud:9090",
        "http://ham4.fermat.cloud:9090",
    ],
    "timeouts": {
        "http": 15,
        "process_wait": 15000,
        "process_success_wait": 5000,
        "port_ready": 5000,
        "port_join": 10000,
        "certificate": 20000,
    },
    "port_check": {
        "test_mode_threshold": 50000,
        "echo": True,
    },
}


class Configuration():

    def __init__(self,command_obj):
        self.argv_list = command_obj.get("argv_list",[])
        self.config_file = command_obj.get("config_file","installer-config.yaml")

        self.log = Logging("main",self.config_file).logger["main"]
        self.log.info("configuration -> setup initialized")

        self.functions = command_obj.get("functions",Functions({}))
        self.error_messages = Error_codes(self.functions)

        self.config_obj = deepcopy(default_config)
        self.yaml_dict = {}

        self.load_yaml()
        self.merge_config(self.config_obj,self.yaml_dict)
        self.validate_config()

        if "test_mode" in self.argv_list:
            self.config_obj["global_elements"]["test_mode"] = True

        if self.config_obj["global_elements"]["test_mode"]:
            self.log.info("configuration -> test mode is enabled")


    def load_yaml(self):
        if not path.isfile(self.config_file):
            self.log.info(f"configuration -> [{self.config_file}] not found, using built-in defaults")
            return

        try:
            with open(self.config_file,"r") as yaml_data:
                self.yaml_dict = yaml.safe_load(yaml_data)
        except yaml.YAMLError as e:
            self.error_messages.error_code_messages({
                "error_code": "cfg-78",
                "line_code": "config_error",
                "extra": self.config_file,
                "extra2": e,
            })

        if self.yaml_dict is None:
            self.yaml_dict = {}
        if not isinstance(self.yaml_dict,dict):
            self.error_messages.error_code_messages({
                "error_code": "cfg-89",
                "line_code": "config_error",
                "extra": self.config_file,
                "extra2": "top level of the configuration must be a mapping",
            })

        self.log.info(f"configuration -> loaded [{self.config_file}]")


    def merge_config(self,base,overrides):
        for key, value in overrides.items():
            if isinstance(value,dict) and isinstance(base.get(key),dict):
                self.merge_config(base[key],value)
            else:
                base[key] = value
        return base


    def validate_config(self):
        errors = []

        if not isinstance(self.config_obj["global_elements"]["test_mode"],bool):
            errors.append("global_elements.test_mode must be true or false")

        seed_nodes = self.config_obj["seed_nodes"]
        if not isinstance(seed_nodes,list) or len(seed_nodes) < 1:
            errors.append("seed_nodes must be a list with at least one url")
        else:
            for seed_node in seed_nodes:
                if not validators.url(str(seed_node),simple_host=True):
                    errors.append(f"seed_nodes entry [{seed_node}] is not a valid url")

        for key, value in self.config_obj["timeouts"].items():
            if isinstance(value,bool) or not isinstance(value,int) or value < 1:
                errors.append(f"timeouts.{key} must be a positive integer")

        threshold = self.config_obj["port_check"]["test_mode_threshold"]
        if isinstance(threshold,bool) or not isinstance(threshold,int) or not 0 < threshold < 65535:
            errors.append("port_check.test_mode_threshold must be an integer between 1 and 65534")

        if not isinstance(self.config_obj["port_check"]["echo"],bool):
            errors.append("port_check.echo must be true or false")

        if errors:
            for error in errors:
                self.log.error(f"configuration -> {error}")
            self.error_messages.error_code_messages({
                "error_code": "cfg-130",
                "line_code": "config_error",
                "extra": self.config_file,
                "extra2": "; ".join(errors),
            })


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
