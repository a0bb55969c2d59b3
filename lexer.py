import logging
import re

from errors import ShankLexerError


logger = logging.getLogger("shank.lexer")
logger.addHandler(logging.NullHandler())


KEYWORDS = {
    "define": "DEFINE",
    "variables": "VARIABLES",
    "constants": "CONSTANTS",
    "if": "IF",
    "elsif": "ELSIF",
    "else": "ELSE",
    "while": "WHILE",
    "for": "FOR",
    "from": "FROM",
    "to": "TO",
    "repeat": "REPEAT",
    "until": "UNTIL",
    "then": "THEN",
    "var": "VAR",
    "mod": "MODULUS",
    "integer": "INTEGER",
    "real": "REAL",
    "float": "REAL",
    "string": "STRING",
    "character": "CHARACTER",
    "char": "CHARACTER",
    "boolean": "BOOLEAN",
    "bool": "BOOLEAN",
    "array": "ARRAY",
    "of": "OF",
    "true": "TRUE",
    "false": "FALSE",
}

# Tried in order after ":=", so two-character operators win over their prefixes.
SYMBOLS = (
    ("<>", "NOT_EQUAL"),
    ("<=", "LESS_OR_EQUAL"),
    (">=", "GREATER_OR_EQUAL"),
    ("+", "PLUS"),
    ("-", "MINUS"),
    ("*", "MULTIPLY"),
    ("/", "DIVIDE"),
    ("=", "EQUALS"),
    ("<", "LESS_THAN"),
    (">", "GREATER_THAN"),
    (",", "COMMA"),
    (";", "SEMICOLON"),
    (":", "COLON"),
    ("(", "PARENTHESIS_L"),
    (")", "PARENTHESIS_R"),
    ("[", "INDEX_L"),
    ("]", "INDEX_R"),
)

NUMBER_RE = re.compile(r"\d+(\.\d*)?")

# lexer states
NONE = "NONE"
WORD = "WORD"
NUMBER = "NUMBER"
STRING_LITERAL = "STRING_LITERAL"
CHAR_LITERAL = "CHAR_LITERAL"
COMMENT = "COMMENT"


class Token:
    def __init__(self, kind, text="", line=0, column=0):
        self.kind = kind
        self.text = text
        self.line = line
        self.column = column

    def __repr__(self):
        if self.text:
            return f"{self.kind}({self.text})"
        return f"{self.kind}"

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return self.kind == other.kind and self.text == other.text

    def __hash__(self):
        return hash((self.kind, self.text))


def is_word_char(ch):
    return ch.isascii() and ch.isalnum()


def indent_count(line):
    """Counts indentation levels: each tab is one level, and so is each run of
    exactly four spaces. The whole line is scanned, not just its prefix."""
    count = 0
    i = 0
    while i < len(line):
        if line[i] == "\t":
            count += 1
            i += 1
        elif line[i:i + 4] == "    ":
            count += 1
            i += 4
        else:
            i += 1
    return count


class Lexer:
    """Lexes Shank source one line at a time.

    Tokens accumulate across calls to lex(); INDENT/DEDENT tokens are emitted at
    the start of a line whenever its indentation depth differs from the previous
    code line. Call finish() after the last line to close any open blocks.
    """

    def __init__(self):
        self.tokens = []
        self.line_number = 0
        self.depth = 0
        self.state = NONE

        # per-line scan position
        self.text = ""
        self.pos = 0
        self.line_tokens = []

    def lex(self, line):
        self.line_number += 1
        self.text = line.rstrip("\r\n")
        self.pos = 0
        self.line_tokens = []

        continues_comment = self.state == COMMENT
        try:
            while self.pos < len(self.text):
                self.step()
        except ShankLexerError:
            self.state = NONE
            self.line_tokens = []
            raise

        # lines without content, and lines that continue a comment, keep the current depth
        if self.line_tokens and not continues_comment:
            content = self.line_tokens
            self.line_tokens = []
            self.indent_to(indent_count(self.text))
            self.line_tokens.extend(content)

        self.add("ENDOFLINE", column=len(self.text) + 1)
        self.tokens.extend(self.line_tokens)
        self.line_tokens = []

    def finish(self):
        # close every block still open at end of input
        for _ in range(self.depth):
            self.tokens.append(Token("DEDENT", line=self.line_number + 1, column=1))
        self.depth = 0
        if self.state == COMMENT:
            logger.warning("comment still open at end of input")
        self.state = NONE

    def get_tokens(self):
        return self.tokens

    def indent_to(self, depth):
        if depth > self.depth:
            for _ in range(depth - self.depth):
                self.add("INDENT", column=1)
        elif depth < self.depth:
            for _ in range(self.depth - depth):
                self.add("DEDENT", column=1)
        self.depth = depth

    def add(self, kind, text="", column=None):
        if column is None:
            column = self.pos + 1
        tok = Token(kind, text, self.line_number, column)
        self.line_tokens.append(tok)
        logger.debug("token %r (line %d, col %d, state %s)", tok, self.line_number, column, self.state)

    def error(self, message, column=None):
        if column is None:
            column = self.pos + 1
        return ShankLexerError(message, self.line_number, column, self.text)

    # ---------- STATE MACHINE ----------
    def step(self):
        if self.state == NONE:
            self.state = self.next_state()
        elif self.state == WORD:
            self.read_word()
        elif self.state == NUMBER:
            self.read_number()
        elif self.state == STRING_LITERAL:
            self.read_literal('"', "STRINGLITERAL")
        elif self.state == CHAR_LITERAL:
            self.read_literal("'", "CHARACTERLITERAL")
        elif self.state == COMMENT:
            self.eat_comment()

    def next_state(self):
        ch = self.text[self.pos]

        if ch.isascii() and ch.isalpha():
            return WORD
        if ch.isdigit():
            return NUMBER
        if ch == '"':
            return STRING_LITERAL
        if ch == "'":
            return CHAR_LITERAL
        if ch == "{":
            self.pos += 1
            return COMMENT
        if ch.isspace():
            self.pos += 1
            return NONE
        if self.try_match():
            return NONE

        raise self.error(f"Unknown character '{ch}'")

    def try_match(self):
        if self.text.startswith(":=", self.pos):
            self.add("ASSIGNER", ":=")
            self.pos += 2
            return True

        for symbol, kind in SYMBOLS:
            if self.text.startswith(symbol, self.pos):
                self.add(kind, symbol)
                self.pos += len(symbol)
                return True
        return False

    def read_word(self):
        start = self.pos
        while self.pos < len(self.text) and is_word_char(self.text[self.pos]):
            self.pos += 1
        word = self.text[start:self.pos]
        self.add(KEYWORDS.get(word, "IDENTIFIER"), word, column=start + 1)
        self.state = NONE

    def read_number(self):
        start = self.pos
        while self.pos < len(self.text) and (self.text[self.pos].isdigit() or self.text[self.pos] == "."):
            self.pos += 1
        number = self.text[start:self.pos]
        if not NUMBER_RE.fullmatch(number):
            raise self.error(f"Invalid number format '{number}'", column=start + 1)
        self.add("NUMBER", number, column=start + 1)
        self.state = NONE

    def read_literal(self, quote, kind):
        start = self.pos
        end = self.text.find(quote, start + 1)
        if end == -1:
            # unterminated: empty literal, never continued on the next line
            self.add(kind, "", column=start + 1)
            self.pos = len(self.text)
        else:
            self.add(kind, self.text[start + 1:end], column=start + 1)
            self.pos = end + 1
        self.state = NONE

    def eat_comment(self):
        end = self.text.find("}", self.pos)
        if end == -1:
            self.pos = len(self.text)
            return
        self.pos = end + 1
        self.state = NONE


def lex_source(source):
    """Lexes a whole file. Lines end at "\\n" only. Returns (tokens, errors);
    lexing continues past lines that fail, and the token list is only meaningful
    when errors is empty."""
    lexer = Lexer()
    errors = []
    lines = source.split("\n")
    if lines and lines[-1] == "":
        # a trailing newline ends the last line, it does not start another
        lines.pop()
    for line in lines:
        try:
            lexer.lex(line)
        except ShankLexerError as e:
            errors.append(e)
    lexer.finish()
    return lexer.get_tokens(), errors
