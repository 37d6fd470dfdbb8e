import random
import validators

from requests import get
from requests.exceptions import RequestException

from .troubleshoot.logger import Logging


class SeedNodes():

    def __init__(self,config_obj):
        self.log = Logging().logger["main"]

        self.external_ip_uri = "{0}/getip"
        self.port_check_uri = "{0}/portcheck?ip={1}&port={2}"

        self.http_timeout = config_obj["timeouts"]["http"]
        self.seed_nodes = list(config_obj["seed_nodes"])
        random.shuffle(self.seed_nodes)

        self.external_ip = None


    def http_get(self,uri):
        result = None
        try:
            response = get(uri,timeout=self.http_timeout)
            if response.status_code == 200:
                result = response.text
            else:
                self.log.error(f"seed_nodes -> request to [{uri}] failed with status code [{response.status_code}]")
        except RequestException as e:
            self.log.error(f"seed_nodes -> request to [{uri}] errored out with [{e}]")

        return result


    def find_external_ip(self):
        for seed_node in self.seed_nodes:
            uri = self.external_ip_uri.format(seed_node)
            self.log.debug(f"seed_nodes -> sending request to [{uri}]")

            response = self.http_get(uri)
            if response is None:
                self.log.error(f"seed_nodes -> request to [{uri}] failed")
                continue

            response = response.strip()
            if validators.ipv4(response) or validators.ipv6(response):
                self.external_ip = response
                self.log.info(f"seed_nodes -> external ip address found [{self.external_ip}]")
                break
            self.log.error(f"seed_nodes -> received invalid response from [{uri}]")

        return self.external_ip


    def check_port(self,ip_address,port):
        result = False
        for seed_node in self.seed_nodes:
            uri = self.port_check_uri.format(seed_node,ip_address,port)
            self.log.debug(f"seed_nodes -> sending request to [{uri}]")

            response = self.http_get(uri)
            if response is None:
                self.log.error(f"seed_nodes -> request to [{uri}] failed")
                continue

            response = response.strip()
            if response == "OK":
                result = True
                break
            elif response == "FAILED":
                break

            self.log.error(f"seed_nodes -> invalid response received from [{uri}]:\n{response}")

        self.log.info(f"seed_nodes -> port check of [{ip_address}:{port}] result [{result}]")
        return result


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
