import io

import library
from interpreter import Interpreter
from lexer import lex_source
from parser import Parser


def run(*lines, stdin="", seed=None):
    tokens, errors = lex_source("\n".join(lines) + "\n")
    assert not errors
    out = io.StringIO()
    err = io.StringIO()
    Interpreter(Parser(tokens).parse(), stdin=io.StringIO(stdin), stdout=out, stderr=err, seed=seed).run()
    return out.getvalue(), err.getvalue()


def test_signatures():
    assert library.lookup("write").signature() == "write(any...)"
    assert library.lookup("read").signature() == "read(var any...)"
    assert library.lookup("left").signature() == "left(string, integer, var string)"
    assert library.lookup("integerToReal").signature() == "integerToReal(var real, integer)"
    assert library.lookup("nothing") is None


def test_write_joins_arguments_with_spaces():
    out, err = run("define start()", "\twrite \"a\", 1, 2.5, true, 'c'")
    assert out == "a 1 2.5 true c\n"
    assert err == ""


def test_read_one_line_per_destination():
    out, err = run(
        "define start()",
        "variables n : integer; s : string; b : boolean",
        "\tread var n, var s, var b",
        "\twrite n + 1, s, b",
        stdin="41\nhello world\ntrue\n",
    )
    assert out == "42 hello world true\n"
    assert err == ""


def test_read_bad_text_is_reported():
    out, err = run(
        "define start()",
        "variables n : integer",
        "\tread var n",
        "\twrite n",
        stdin="abc\n",
    )
    assert out == "0\n"
    assert "read(var any...): cannot convert 'abc' to integer" in err


def test_string_slicing():
    out, err = run(
        "define start()",
        "variables s : string",
        '\tleft "hello", 2, var s',
        "\twrite s",
        '\tright "hello", 3, var s',
        "\twrite s",
        '\tsubstring "hello", 1, 3, var s',
        "\twrite s",
        '\tright "hi", 5, var s',
        "\twrite s",
    )
    assert out == "he\nllo\nell\nhi\n"
    assert err == ""


def test_numeric_conversions():
    out, err = run(
        "define start()",
        "variables r : real; n : integer",
        "\tsquareRoot 16.0, var r",
        "\twrite r",
        "\tintegerToReal var r, 3",
        "\twrite r",
        "\trealToInteger var n, 3.7",
        "\twrite n",
        "\trealToInteger var n, -3.7",
        "\twrite n",
    )
    assert out == "4.0\n3.0\n3\n-3\n"
    assert err == ""


def test_get_random_honours_range_and_seed():
    program = [
        "define start()",
        "variables d : integer from 1 to 6",
        "variables i : integer",
        "\tfor i from 1 to 20",
        "\t\tgetRandom var d",
        "\t\twrite d",
    ]
    out, _ = run(*program, seed=7)
    rolls = [int(x) for x in out.split()]
    assert len(rolls) == 20
    assert all(1 <= roll <= 6 for roll in rolls)

    again, _ = run(*program, seed=7)
    assert again == out


def test_array_bounds():
    out, err = run(
        "define start()",
        "variables a : array from 2 to 5 of real",
        "variables low, high : integer",
        "\tstart a, var low",
        "\tend a, var high",
        "\twrite low, high",
    )
    assert out == "2 5\n"
    assert err == ""


def test_misuse_is_reported_not_raised():
    out, err = run(
        "define start()",
        "variables s : string; r : real",
        '\ts := "unchanged"',
        '\tleft "hello", 2',
        '\tleft "hello", 2, s',
        "\tsquareRoot 4, var r",
        "\tsquareRoot -4.0, var r",
        '\tleft "hello", -1, var s',
        "\twrite s, r",
    )
    assert out == "unchanged 0.0\n"
    lines = err.splitlines()
    assert lines == [
        "left(string, integer, var string): expected 3 arguments, got 2",
        "left(string, integer, var string): argument 3 must be passed with var",
        "squareRoot(real, var real): argument 1 must be real, got integer",
        "squareRoot(real, var real): cannot take the square root of -4.0",
        "left(string, integer, var string): length must not be negative, got -1",
    ]
