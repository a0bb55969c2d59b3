class ShankError(Exception):
    pass


class ShankLexerError(ShankError):
    def __init__(self, message: str, line: int, column: int, source: str = ""):
        super().__init__(message)
        self.message = message
        self.line = line          # 1-based line number
        self.column = column      # 1-based column of the offending character
        self.source = source      # full text of the offending line

    def pointer(self) -> str:
        # caret under the offending column, tildes leading up to it
        if self.column <= 1:
            return "^"
        return "~" * (self.column - 1) + "^"

    def format(self, indent: str = "") -> str:
        lines = [f"{indent}Lexical error: {self.message} at line {self.line}, col {self.column}"]
        if self.source:
            lines.append(f"{indent}  {self.source.expandtabs(1)}")
            lines.append(f"{indent}  {self.pointer()}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()


class ShankSyntaxError(ShankError):
    def __init__(self, message: str, token=None):
        super().__init__(message)
        self.message = message
        self.token = token

    def format(self, indent: str = "") -> str:
        tok = self.token
        if tok is None:
            return f"{indent}Syntax error: {self.message} (at end of input)"
        return f"{indent}Syntax error: {self.message}, got {tok!r} at line {tok.line}, col {tok.column}"

    def __str__(self) -> str:
        return self.format()


class ShankRuntimeError(ShankError):
    def __init__(self, message: str, line: int | None = None, frames=None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.frames = frames or []  # function names, most recent first

    def format(self, indent: str = "") -> str:
        lines = [f"{indent}Runtime error: {self.message}"]
        if self.line is not None:
            lines.append(f"{indent}  line {self.line}")
        for func in self.frames:
            lines.append(f"{indent}  in function {func}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()
