import dataclasses
import logging
import os
import sys
import traceback

from colorama import Fore, Style, just_fix_windows_console

from errors import ShankError
from interpreter import Interpreter
from lexer import lex_source
from parser import Parser


USAGE = [
    "Usage:",
    "  python cli.py <file.shank>",
    "  (optional) --entry NAME to start from another function (default: start)",
    "  (optional) --tokens to print the token stream",
    "  (optional) --ast to print the parsed program",
    "  (optional) --debug to show Python traceback and debug logging",
]


class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED,
    }

    def format(self, record):
        text = super().format(record)
        color = self.COLORS.get(record.levelno)
        if color:
            return f"{color}{text}{Style.RESET_ALL}"
        return text


def setup_logging(debug: bool = False):
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColorFormatter("%(levelname)s %(name)s: %(message)s"))
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, handlers=[handler])


# AST printer (so you can SEE what the parser built)
def ast_to_dict(node):
    if node is None:
        return None
    if isinstance(node, list):
        return [ast_to_dict(item) for item in node]
    if isinstance(node, dict):
        return {k: ast_to_dict(v) for k, v in node.items()}
    if not dataclasses.is_dataclass(node):
        return node

    d = {"type": node.__class__.__name__}
    if node.line is not None:
        d["line"] = node.line
    for f in dataclasses.fields(node):
        value = getattr(node, f.name)
        # keep the dump short: leave out optional fields still at their default
        if value is None or (f.default is not dataclasses.MISSING and value == f.default):
            continue
        d[f.name] = ast_to_dict(value)
    return d


def pretty(obj, indent=0):
    sp = "  " * indent
    if isinstance(obj, dict):
        lines = []
        for k, v in obj.items():
            if isinstance(v, (dict, list)) and v:
                lines.append(f"{sp}{k}:")
                lines.append(pretty(v, indent + 1))
            else:
                lines.append(f"{sp}{k}: {v}")
        return "\n".join(lines)
    if isinstance(obj, list):
        lines = []
        for item in obj:
            lines.append(f"{sp}-")
            lines.append(pretty(item, indent + 1))
        return "\n".join(lines)
    return f"{sp}{obj}"


def print_error(text):
    # headline in red, detail lines as they are
    headline, _, rest = text.partition("\n")
    print(f"{Fore.RED}{headline}{Style.RESET_ALL}", file=sys.stderr)
    if rest:
        print(rest, file=sys.stderr)


def lex_file(path):
    with open(path, "r", encoding="utf-8") as f:
        return lex_source(f.read())


def cmd_run(path, entry="start", show_tokens=False, show_ast=False, debug=False):
    try:
        tokens, errors = lex_file(path)
        if errors:
            for e in errors:
                print_error(e.format())
            print(f"{len(errors)} lexical error(s), not parsing.", file=sys.stderr)
            sys.exit(1)

        if show_tokens:
            for tok in tokens:
                print(f"{tok.line:4d}:{tok.column:<4d} {tok!r}")

        program = Parser(tokens).parse()

        if show_ast:
            print(pretty(ast_to_dict(program)))

        if show_tokens or show_ast:
            return

        Interpreter(program).run(entry)
    except ShankError as e:
        if debug:
            traceback.print_exc()
        else:
            print_error(e.format())
        sys.exit(1)
    except RecursionError:
        if debug:
            traceback.print_exc()
        else:
            print_error("Runtime error: host call stack exhausted (recursion too deep)")
        sys.exit(1)
    except Exception as e:
        if debug:
            traceback.print_exc()
        else:
            print_error(f"Internal error: {type(e).__name__}: {e}")
        sys.exit(1)


def pop_flag(args, flag):
    if flag in args:
        args.remove(flag)
        return True
    return False


def main():
    just_fix_windows_console()

    args = sys.argv[1:]
    debug = pop_flag(args, "--debug")
    show_tokens = pop_flag(args, "--tokens")
    show_ast = pop_flag(args, "--ast")

    entry = "start"
    if "--entry" in args:
        i = args.index("--entry")
        if i + 1 >= len(args):
            print("--entry needs a function name.")
            sys.exit(1)
        entry = args[i + 1]
        del args[i:i + 2]

    if len(args) != 1:
        print("\n".join(USAGE))
        sys.exit(1)

    path = args[0]
    if not os.path.isfile(path):
        print_error(f"File not found: {path}")
        sys.exit(1)

    setup_logging(debug)
    # Shank calls recurse through the interpreter, give deep programs room
    sys.setrecursionlimit(max(sys.getrecursionlimit(), 20000))
    cmd_run(path, entry=entry, show_tokens=show_tokens, show_ast=show_ast, debug=debug)


if __name__ == "__main__":
    main()
