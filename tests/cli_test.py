import os
import subprocess
import sys
import tempfile


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
CLI = os.path.join(ROOT, "cli.py")


def run_cli(*args, inp: str = "") -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, CLI, *args],
        input=inp,
        text=True,
        capture_output=True,
        cwd=ROOT,
        timeout=10,
    )


def run_source(source: str, *flags, inp: str = "") -> subprocess.CompletedProcess:
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "program.shank")
        with open(path, "w", encoding="utf-8") as f:
            f.write(source)
        return run_cli(path, *flags, inp=inp)


HELLO = "define start()\n\twrite \"hello world\"\n"


def test_runs_program():
    proc = run_source(HELLO)
    if proc.returncode != 0:
        raise AssertionError(f"CLI exited with code {proc.returncode}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}")
    if proc.stdout != "hello world\n":
        raise AssertionError(f"Expected hello world.\nOUT:\n{proc.stdout}")


def test_reads_standard_input():
    source = (
        "define start()\n"
        "variables name : string\n"
        "\tread var name\n"
        "\twrite \"hi\", name\n"
    )
    proc = run_source(source, inp="bob\n")
    if proc.stdout != "hi bob\n":
        raise AssertionError(f"Expected greeting.\nOUT:\n{proc.stdout}\nERR:\n{proc.stderr}")


def test_usage_on_wrong_argument_count():
    proc = run_cli()
    if proc.returncode != 1 or "Usage" not in proc.stdout:
        raise AssertionError(f"Expected usage and exit 1.\nOUT:\n{proc.stdout}")

    proc = run_cli("a.shank", "b.shank")
    if proc.returncode != 1 or "Usage" not in proc.stdout:
        raise AssertionError(f"Expected usage and exit 1.\nOUT:\n{proc.stdout}")


def test_missing_file():
    proc = run_cli(os.path.join(ROOT, "does-not-exist.shank"))
    if proc.returncode != 1 or "File not found" not in proc.stderr:
        raise AssertionError(f"Expected missing file error.\nERR:\n{proc.stderr}")


def test_lexical_errors_stop_before_parsing():
    proc = run_source("define start()\n\twrite 1 $ 2\n\twrite 3 # 4\n")
    if proc.returncode != 1:
        raise AssertionError(f"Expected exit 1, got {proc.returncode}")
    if proc.stderr.count("Lexical error") != 2 or "~~~~~~~~~^" not in proc.stderr:
        raise AssertionError(f"Expected two pointed lexical errors.\nERR:\n{proc.stderr}")
    if "2 lexical error(s), not parsing." not in proc.stderr:
        raise AssertionError(f"Expected summary line.\nERR:\n{proc.stderr}")
    if proc.stdout:
        raise AssertionError(f"Nothing should run.\nOUT:\n{proc.stdout}")


def test_syntax_error():
    proc = run_source("define start()\n\tif true\n\t\twrite 1\n")
    if proc.returncode != 1 or "Syntax error: Expected 'then'" not in proc.stderr:
        raise AssertionError(f"Expected syntax error.\nERR:\n{proc.stderr}")


def test_runtime_error_keeps_earlier_output():
    proc = run_source("define start()\n\twrite 1\n\twrite 1 / 0\n")
    if proc.returncode != 1:
        raise AssertionError(f"Expected exit 1, got {proc.returncode}")
    if proc.stdout != "1\n":
        raise AssertionError(f"Expected output before the error.\nOUT:\n{proc.stdout}")
    for part in ("Runtime error: Division by zero", "line 3", "in function start"):
        if part not in proc.stderr:
            raise AssertionError(f"Expected {part!r} in error.\nERR:\n{proc.stderr}")


def test_debug_prints_traceback():
    proc = run_source("define start()\n\twrite 1 / 0\n", "--debug")
    if proc.returncode != 1 or "Traceback" not in proc.stderr:
        raise AssertionError(f"Expected traceback.\nERR:\n{proc.stderr}")


def test_duplicate_function_warning():
    proc = run_source("define start()\n\twrite 1\ndefine start()\n\twrite 2\n")
    if proc.stdout != "2\n":
        raise AssertionError(f"Expected later definition to run.\nOUT:\n{proc.stdout}")
    if "Duplicate function name 'start'" not in proc.stderr:
        raise AssertionError(f"Expected duplicate warning.\nERR:\n{proc.stderr}")


def test_tokens_flag():
    proc = run_source(HELLO, "--tokens")
    if "DEFINE" not in proc.stdout or "STRINGLITERAL(hello world)" not in proc.stdout:
        raise AssertionError(f"Expected token dump.\nOUT:\n{proc.stdout}")
    if "hello world\n" == proc.stdout:
        raise AssertionError("Program should not run with --tokens")


def test_ast_flag():
    proc = run_source(HELLO, "--ast")
    for part in ("type: Program", "type: FunctionDefinition", "name: start", "value: hello world"):
        if part not in proc.stdout:
            raise AssertionError(f"Expected {part!r} in AST dump.\nOUT:\n{proc.stdout}")


def test_entry_flag():
    proc = run_source(HELLO + "define other()\n\twrite \"other\"\n", "--entry", "other")
    if proc.stdout != "other\n":
        raise AssertionError(f"Expected other entry to run.\nOUT:\n{proc.stdout}\nERR:\n{proc.stderr}")


if __name__ == "__main__":
    test_runs_program()
    test_reads_standard_input()
    test_usage_on_wrong_argument_count()
    test_missing_file()
    test_lexical_errors_stop_before_parsing()
    test_syntax_error()
    test_runtime_error_keeps_earlier_output()
    test_debug_prints_traceback()
    test_duplicate_function_warning()
    test_tokens_flag()
    test_ast_flag()
    test_entry_flag()
    print("ok")
