import math
import select
import validators

from os import system
from shutil import get_terminal_size
from sys import exit, stdin
from textwrap import TextWrapper
from time import sleep
from types import SimpleNamespace
from termcolor import colored, cprint
from sshkeyboard import listen_keyboard, stop_listening

from .troubleshoot.logger import Logging


class Functions():

    def __init__(self,config_obj):
        self.log = Logging().logger["main"]
        self.config_obj = config_obj
        self.installer_version = "v0.3.0"
        self.event = False
        self.key_pressed = None


    # =============================
    # get functions
    # =============================

    def get_user_keypress(self,command_obj):
        # prompt=(str)
        # prompt_color=(str)
        # options=(list) list of valid keys, first one is the default on enter
        var = SimpleNamespace(**command_obj)
        self.key_pressed = None

        invalid_str = f"  {colored(' Invalid ','yellow','on_red',attrs=['bold'])}: {colored('only','red')} "
        invalid_str += ", ".join(colored(option,'white',attrs=['bold']) for option in var.options)
        invalid_str = colored(invalid_str,"red")

        cprint(f"  {var.prompt}",var.prompt_color,end="\r")
        print("\033[F")

        def press(key):
            if key == "enter":
                key = var.options[0]
            if key.lower() in [option.lower() for option in var.options]:
                stop_listening()
                self.key_pressed = key
                return
            print(f"{invalid_str} {colored('options','red')}")
            cprint("  are accepted, please try again","red")

        listen_keyboard(
            on_press=press,
            delay_second_char=0.75,
        )

        print("")
        self.log.debug(f"functions -> user key press [{self.key_pressed}] for prompt [{var.prompt}]")
        return self.key_pressed.lower()


    def get_string_answer(self,command_obj):
        # prompt=(str)
        # default=(str) returned when the user only presses enter
        prompt = command_obj.get("prompt")
        default = command_obj.get("default","")
        prompt_color = command_obj.get("prompt_color","cyan")

        if default not in ["",None]:
            prompt = f"  {colored(prompt,prompt_color)} {colored('[',prompt_color)}{colored(default,'yellow')}{colored(']: ',prompt_color)}"
        else:
            prompt = f"  {colored(prompt,prompt_color)}{colored(': ',prompt_color)}"

        if self.test_for_premature_enter_press():
            input()

        answer = input(prompt).strip()
        if answer == "":
            answer = "" if default is None else str(default)
        return answer


    # =============================
    # test functions
    # =============================

    def test_for_premature_enter_press(self):
        try:
            return select.select([stdin], [], [], 0) == ([stdin], [], [])
        except (OSError,ValueError):
            return False


    def is_valid_ip(self,address):
        if not address:
            return False
        return bool(validators.ipv4(address)) or bool(validators.ipv6(address))


    # =============================
    # print functions
    # =============================

    def print_clear_line(self):
        console_size = get_terminal_size()
        print(f"{' ': >{console_size.columns-2}}",end="\r")


    def print_header_title(self,command_obj):
        #line1=(str), line2=(str)None, clear=(bool)False, newline=(str) top, bottom, both
        #single_line=(bool) default: False
        line1 = command_obj["line1"]
        line2 = command_obj.get("line2", None)
        clear = command_obj.get("clear", False)
        newline = command_obj.get("newline", False)

        single_line = command_obj.get("single_line", False)
        single_color = command_obj.get("single_color", "yellow")
        single_bg = command_obj.get("single_bg", "on_blue")

        if "on_" not in single_bg:
            single_bg = f"on_{single_bg}"

        if clear:
            system("clear")
        if newline == "top" or newline == "both":
            print("")

        if single_line:
            line1 = f" * {line1} * "
            print("  ",end="")
            cprint(f'{line1:-^40}',single_color,single_bg,attrs=["bold"])
        else:
            header0 = "  ========================================"
            header1 = "  =          IOP NODE INSTALLER          ="

            header_length = len(header0)-2
            header_middle = math.ceil(header_length/2)

            lines = [line1,line2]
            for n,line in enumerate(lines):
                if line is not None:
                    line_length = len(line)
                    line_middle = math.ceil(line_length/2)
                    reduce = 2 if line_length % 2 == 0 else 1
                    line_rjust = int((header_middle-line_middle))
                    lines[n] = "".rjust(line_rjust)+line+"".rjust(line_rjust-reduce)

            print(colored(header0,"white",attrs=['bold']))
            print(colored(header1,"white",attrs=['bold']))

            for line in lines:
                if line is not None:
                    print(colored("  =","white",attrs=["bold"]),end="")
                    print(colored(line,"green",attrs=["bold"]),end="")
                    print(colored("=","white",attrs=["bold"]))

            print(colored(header0,"white",attrs=['bold']))

        if newline == "bottom" or newline == "both":
            print("")


    def print_cmd_status(self,command_obj):
        # status=(str) "running", "ok", "failed"
        # text_start=(str) wording before brackets
        # text_end=(str) wording after brackets  # default ""
        # brackets=(str) string to be in yellow and brackets # default False
        # newline={bool} # default False
        # delay={float} # how long to pause to allow user to see
        text_start = command_obj["text_start"]
        text_end = command_obj.get('text_end',"")
        text_color = command_obj.get('text_color',"cyan")
        status = command_obj.get("status","")
        brackets = command_obj.get('brackets',False)
        delay = command_obj.get('delay',0)
        newline = command_obj.get('newline',False)
        status_color = command_obj.get('status_color',"default")

        if status_color == "default":
            status_color = "yellow" if status == "running" else "green"
            status_color = "red" if status == "failed" else status_color

        padding = 50 - (len(text_start)+(len(brackets)-2)) if brackets else 55 - len(text_start)
        if padding < 0:
            padding = 0

        status = colored(status,status_color,attrs=['bold'])
        text_start = colored(text_start,text_color)
        text_end = colored(text_end,text_color)

        if brackets:
            brackets = colored(brackets,"yellow",attrs=["bold"])
            text_start = f"{text_start} {colored('[',text_color)}{brackets}{colored(']',text_color)} {text_end:.<{padding}} {status}"
        else:
            text_start = f"{text_start} {text_end:.<{padding}} {status}"

        self.print_clear_line()
        print(" ",text_start,end="\r")

        if newline:
            print("")

        sleep(delay)


    def print_paragraphs(self,paragraphs,wrapper_obj=None):
        # paragraph=(list)
        # [0] = line
        # [1] = newlines (optional default = 1)
            # -1 = no space
            # 0 = same line with white space
            # 2 - X = number of newlines
        # [2] = color (optional default = cyan)
        # [3] = attributes (optional, comma separated)
        console_size = get_terminal_size()

        initial_indent = subsequent_indent = "  "
        if wrapper_obj is not None:
            initial_indent = wrapper_obj.get("indent","  ")
            subsequent_indent = wrapper_obj.get("sub_indent","  ")

        console_setup = TextWrapper()
        console_setup.initial_indent = initial_indent
        console_setup.subsequent_indent = subsequent_indent
        console_setup.width = (console_size.columns - 2)

        last_line = ""

        for current in paragraphs:
            line = str(current[0])
            newlines = current[1] if len(current) > 1 else 1
            color = current[2] if len(current) > 2 else "cyan"

            on_color = None
            if "," in color:
                color, on_color = color.split(",")[:2]

            attrs = current[3].split(",") if len(current) > 3 else None
            line = colored(line,color,on_color,attrs=attrs)

            do_print = True
            if newlines == 0 and last_line == "":
                last_line = line
                do_print = False
            elif newlines == -1:
                last_line = last_line+line
                do_print = False
            elif newlines == 0:
                last_line = last_line+" "+line
                do_print = False
            elif last_line != "":
                line = last_line+" "+line
                last_line = ""

            if do_print:
                print(console_setup.fill(line))
                for _ in range(1,newlines):
                    print("")


    def print_spinner(self,command_obj):
        msg = command_obj.get("msg")
        color = command_obj.get("color","cyan")

        def spinning_cursor():
            while True:
                for cursor in '|/-\\':
                    yield cursor

        spinner = spinning_cursor()
        while self.event:
            cursor = next(spinner)
            print(f"  {colored(msg,color)} {colored(cursor,color)}",end="\r")
            sleep(0.2)
        self.print_clear_line()


    def confirm_action(self,command_obj):
        self.log.debug("functions -> confirm action request")

        yes_no_default = command_obj.get("yes_no_default")
        return_on = command_obj.get("return_on")
        prompt = command_obj.get("prompt")
        prompt_color = command_obj.get("prompt_color","cyan")
        exit_if = command_obj.get("exit_if",True)

        prompt = f"  {colored(f'{prompt}',prompt_color)} {colored('[',prompt_color)}{colored(yes_no_default,'yellow')}{colored(']: ',prompt_color)}"
        valid_options = ["y","n",return_on,yes_no_default]

        if self.test_for_premature_enter_press():
            input()

        while True:
            confirm = input(prompt)
            if confirm == "":
                break
            confirm = confirm.lower()
            if confirm not in valid_options:
                print(colored("  incorrect input","red"))
            else:
                break

        if yes_no_default == return_on and confirm == "":
            return True
        if confirm.lower() == str(return_on).lower():
            return True

        if exit_if:
            print(colored("  Action has been cancelled","green"))
            exit(0)

        return False


if __name__ == "__main__":
    print("This class module is not designed to be run independently, please refer to the documentation")
