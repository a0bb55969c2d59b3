from dataclasses import dataclass, field


# declared type tags
INTEGER = "integer"
REAL = "real"
STRING = "string"
CHARACTER = "character"
BOOLEAN = "boolean"
ARRAY = "array"


class ASTNode:
    # Optional source line (1-based). Parser sets this; it never takes part in equality.
    line: int | None = None


# ---------- EXPRESSIONS ----------
@dataclass
class IntegerLiteral(ASTNode):
    value: int


@dataclass
class RealLiteral(ASTNode):
    value: float


@dataclass
class StringLiteral(ASTNode):
    value: str


@dataclass
class CharLiteral(ASTNode):
    value: str


@dataclass
class BooleanLiteral(ASTNode):
    value: bool


@dataclass
class VariableReference(ASTNode):
    name: str
    index: ASTNode | None = None  # array index expression


@dataclass
class BinaryArithmetic(ASTNode):
    op: str
    left: ASTNode
    right: ASTNode


@dataclass
class BooleanCompare(ASTNode):
    op: str
    left: ASTNode
    right: ASTNode


# ---------- STATEMENTS ----------
@dataclass
class Assignment(ASTNode):
    target: VariableReference
    value: ASTNode


@dataclass
class IfBranch(ASTNode):
    condition: ASTNode | None  # None marks the trailing else
    body: list


@dataclass
class IfChain(ASTNode):
    branches: list  # list[IfBranch], tested in order


@dataclass
class While(ASTNode):
    condition: ASTNode
    body: list


@dataclass
class Repeat(ASTNode):
    condition: ASTNode
    body: list


@dataclass
class For(ASTNode):
    variable: VariableReference
    start: ASTNode
    end: ASTNode
    body: list


@dataclass
class CallParameter(ASTNode):
    value: ASTNode
    by_reference: bool = False  # `var name` argument


@dataclass
class Call(ASTNode):
    name: str
    parameters: list  # list[CallParameter]


# ---------- DECLARATIONS ----------
@dataclass
class VariableNode(ASTNode):
    name: str
    type_tag: str
    is_constant: bool = False
    value_range: tuple | None = None  # inclusive (from, to); index bounds for arrays
    is_var: bool = False              # by-reference formal parameter
    initial: ASTNode | None = None    # literal value of a constant
    element_type: str | None = None   # arrays only


@dataclass
class FunctionDefinition(ASTNode):
    name: str
    parameters: list  # list[VariableNode]
    locals: list      # constants and variables, list[VariableNode]
    body: list        # list of statements


@dataclass
class Program(ASTNode):
    functions: dict = field(default_factory=dict)  # name -> FunctionDefinition

    def get(self, name):
        return self.functions.get(name)

    def __contains__(self, name):
        return name in self.functions

    def __iter__(self):
        return iter(self.functions.values())

    def __len__(self):
        return len(self.functions)
