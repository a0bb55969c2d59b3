import logging

from ast_nodes import (
    Program, FunctionDefinition, VariableNode,
    IntegerLiteral, RealLiteral, StringLiteral, CharLiteral, BooleanLiteral,
    VariableReference, BinaryArithmetic, BooleanCompare,
    Assignment, IfBranch, IfChain, While, Repeat, For, Call, CallParameter,
    INTEGER, REAL, STRING, CHARACTER, BOOLEAN, ARRAY,
)
from errors import ShankSyntaxError
from values import to_single


logger = logging.getLogger("shank.parser")
logger.addHandler(logging.NullHandler())


class Parser:
    """Recursive-descent parser over a finished token list.

    The token list is never modified; a cursor walks it and `indent_level`
    follows every INDENT/DEDENT consumed, which is how statement blocks know
    they have ended.
    """

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.pos = 0
        self.indent_level = 0

    # move to next token, keeping the indent level in step
    def advance(self):
        tok = self.tokens[self.pos]
        if tok.kind == "INDENT":
            self.indent_level += 1
        elif tok.kind == "DEDENT":
            self.indent_level -= 1
        self.pos += 1
        return tok

    def peek(self, offset=0):
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return None

    def at(self, *kinds):
        tok = self.peek()
        return tok is not None and tok.kind in kinds

    def match(self, kind):
        if self.at(kind):
            return self.advance()
        return None

    # consume a token, but only if it matches what we expect
    def eat(self, kind, expected=None):
        tok = self.match(kind)
        if tok is None:
            self.error_here(f"Expected {expected or kind}")
        return tok

    def error_here(self, message):
        raise ShankSyntaxError(message, self.peek())

    def skip_newlines(self):
        while self.match("ENDOFLINE"):
            pass

    def expect_end_of_line(self):
        self.eat("ENDOFLINE", "end of line")
        self.skip_newlines()

    # ---------- TOP LEVEL ----------
    def parse(self):
        program = Program()
        self.skip_newlines()

        while self.peek() is not None:
            function = self.function()
            if function.name in program:
                logger.warning("Duplicate function name '%s': line %s replaces the earlier definition",
                               function.name, function.line)
            program.functions[function.name] = function
            self.skip_newlines()

        if self.indent_level != 0:
            raise ShankSyntaxError(f"Unbalanced indentation (level {self.indent_level} at end of input)")
        return program

    def function(self):
        tok = self.eat("DEFINE", "'define'")
        name = self.eat("IDENTIFIER", "function name").text

        self.eat("PARENTHESIS_L", "'('")
        parameters = self.declarations("PARENTHESIS_R", constants=False)
        self.eat("PARENTHESIS_R", "')'")
        self.expect_end_of_line()

        local_nodes = []
        while self.at("CONSTANTS", "VARIABLES"):
            constants = self.advance().kind == "CONSTANTS"
            local_nodes.extend(self.declarations("ENDOFLINE", constants=constants))
            self.expect_end_of_line()

        body = []
        if self.at("INDENT"):
            body = self.statements()

        node = FunctionDefinition(name, parameters, local_nodes, body)
        node.line = tok.line
        logger.debug("parsed function %s (%d params, %d locals, %d statements)",
                     name, len(parameters), len(local_nodes), len(body))
        return node

    # ---------- DECLARATIONS ----------
    def declarations(self, terminator, constants):
        # group (';' group)* up to the terminator; each group shares one type or value
        nodes = []
        while not self.at(terminator):
            nodes.extend(self.declaration_group(constants))
            if not self.match("SEMICOLON"):
                break
        return nodes

    def declaration_group(self, constants):
        is_var = self.match("VAR") is not None
        names = [self.eat("IDENTIFIER", "variable name")]
        while self.match("COMMA"):
            names.append(self.eat("IDENTIFIER", "variable name"))

        if constants:
            if is_var:
                raise ShankSyntaxError("'var' is not allowed in a constants declaration", names[0])
            self.eat("EQUALS", "'=' in constants declaration")
            literal = self.constant_literal()
            type_tag = literal_type(literal)
            nodes = [VariableNode(tok.text, type_tag, is_constant=True, initial=literal) for tok in names]
        else:
            self.eat("COLON", "':'")
            type_tag, element_type, value_range = self.type_spec()
            nodes = [
                VariableNode(tok.text, type_tag, value_range=value_range, is_var=is_var, element_type=element_type)
                for tok in names
            ]

        for tok, node in zip(names, nodes):
            node.line = tok.line
        return nodes

    def type_spec(self):
        if self.match("ARRAY"):
            bounds = self.range_spec(integers=True)
            self.eat("OF", "'of'")
            return ARRAY, self.scalar_type(), bounds

        type_tag = self.scalar_type()
        value_range = None
        if self.at("FROM"):
            tok = self.peek()
            if type_tag not in (INTEGER, REAL, STRING):
                raise ShankSyntaxError(f"A range is not allowed for type {type_tag}", tok)
            value_range = self.range_spec(integers=type_tag != REAL)
        return type_tag, None, value_range

    def scalar_type(self):
        tok = self.peek()
        type_tag = TYPE_TAGS.get(tok.kind) if tok is not None else None
        if type_tag is None:
            self.error_here("Expected a type name")
        self.advance()
        return type_tag

    def range_spec(self, integers):
        self.eat("FROM", "'from'")
        start_tok = self.peek()
        low = self.signed_number()
        self.eat("TO", "'to'")
        high = self.signed_number()

        if integers and (isinstance(low, float) or isinstance(high, float)):
            raise ShankSyntaxError("Range bounds must be integers", start_tok)
        if low > high:
            raise ShankSyntaxError(f"Empty range {low} to {high}", start_tok)
        return (low, high)

    def signed_number(self):
        negative = self.match("MINUS") is not None
        literal = number_literal(self.eat("NUMBER", "number"))
        return -literal.value if negative else literal.value

    def constant_literal(self):
        tok = self.peek()
        if self.match("MINUS"):
            literal = number_literal(self.eat("NUMBER", "number after '-'"))
            literal.value = -literal.value
        elif self.match("NUMBER"):
            literal = number_literal(tok)
        elif self.match("STRINGLITERAL"):
            literal = StringLiteral(tok.text)
        elif self.match("CHARACTERLITERAL"):
            literal = char_literal(tok)
        elif self.match("TRUE") or self.match("FALSE"):
            literal = BooleanLiteral(tok.kind == "TRUE")
        else:
            self.error_here("Expected a literal value for constant")
        literal.line = tok.line
        return literal

    # ---------- STATEMENTS ----------
    def statements(self):
        # a block starts with one INDENT and ends when the level drops back to where it began
        entry_level = self.indent_level
        self.eat("INDENT", "an indented block")

        body = []
        while self.peek() is not None:
            if self.match("ENDOFLINE"):
                continue
            if self.at("DEDENT"):
                self.advance()
                if self.indent_level <= entry_level:
                    break
                continue
            body.append(self.statement())
        return body

    def statement(self):
        tok = self.peek()

        if tok.kind == "IF":
            return self.if_chain()
        if tok.kind == "WHILE":
            return self.while_statement()
        if tok.kind == "FOR":
            return self.for_statement()
        if tok.kind == "REPEAT":
            return self.repeat_statement()

        # identifier start: assignment when ':=' or '[' follows, otherwise a call
        if tok.kind == "IDENTIFIER":
            nxt = self.peek(1)
            if nxt is not None and nxt.kind in ("ASSIGNER", "INDEX_L"):
                return self.assignment()
            return self.call()

        self.error_here("Unexpected token at start of statement")

    def assignment(self):
        tok = self.eat("IDENTIFIER")
        index = None
        if self.match("INDEX_L"):
            index = self.expression()
            self.eat("INDEX_R", "']'")

        target = VariableReference(tok.text, index)
        target.line = tok.line
        self.eat("ASSIGNER", "':='")
        value = self.bool_compare()
        self.expect_end_of_line()

        node = Assignment(target, value)
        node.line = tok.line
        return node

    def if_chain(self):
        # Grammar:
        #   IF cond THEN block (ELSIF cond THEN block | ELSE IF cond THEN block)* (ELSE block)?
        tok = self.eat("IF")
        branches = [self.if_branch(tok)]

        while True:
            branch_tok = self.match("ELSIF")
            if branch_tok is None:
                else_tok = self.match("ELSE")
                if else_tok is None:
                    break
                branch_tok = self.match("IF")
                if branch_tok is None:
                    self.expect_end_of_line()
                    branch = IfBranch(None, self.statements())
                    branch.line = else_tok.line
                    branches.append(branch)
                    break
            branches.append(self.if_branch(branch_tok))

        node = IfChain(branches)
        node.line = tok.line
        return node

    def if_branch(self, tok):
        condition = self.bool_compare()
        self.eat("THEN", "'then'")
        self.expect_end_of_line()
        branch = IfBranch(condition, self.statements())
        branch.line = tok.line
        return branch

    def while_statement(self):
        tok = self.eat("WHILE")
        condition = self.bool_compare()
        self.expect_end_of_line()
        node = While(condition, self.statements())
        node.line = tok.line
        return node

    def for_statement(self):
        tok = self.eat("FOR")
        var_tok = self.eat("IDENTIFIER", "loop variable name after for")
        variable = VariableReference(var_tok.text)
        variable.line = var_tok.line

        self.eat("FROM", "'from'")
        start = self.expression()
        self.eat("TO", "'to'")
        end = self.expression()
        self.expect_end_of_line()

        node = For(variable, start, end, self.statements())
        node.line = tok.line
        return node

    def repeat_statement(self):
        tok = self.eat("REPEAT")
        self.eat("UNTIL", "'until'")
        condition = self.bool_compare()
        self.expect_end_of_line()
        node = Repeat(condition, self.statements())
        node.line = tok.line
        return node

    def call(self):
        tok = self.eat("IDENTIFIER")

        parameters = []
        if not self.at("ENDOFLINE"):
            parameters.append(self.call_parameter())
            while self.match("COMMA"):
                parameters.append(self.call_parameter())
        self.expect_end_of_line()

        node = Call(tok.text, parameters)
        node.line = tok.line
        return node

    def call_parameter(self):
        # `var name` passes the caller's variable itself, anything else is a value
        tok = self.peek()
        if self.match("VAR"):
            name_tok = self.eat("IDENTIFIER", "variable name after var")
            ref = VariableReference(name_tok.text)
            ref.line = name_tok.line
            node = CallParameter(ref, by_reference=True)
        else:
            node = CallParameter(self.bool_compare())
        node.line = tok.line
        return node

    # ---------- EXPRESSIONS ----------
    # bool_compare -> expression (compare_op expression)?
    def bool_compare(self):
        left = self.expression()
        tok = self.peek()
        if tok is not None and tok.kind in COMPARE_OPS:
            self.advance()
            right = self.expression()
            node = BooleanCompare(COMPARE_OPS[tok.kind], left, right)
            node.line = tok.line
            return node
        return left

    # expression -> term ((+|-) term)*
    def expression(self):
        node = self.term()
        while self.at("PLUS", "MINUS"):
            op_tok = self.advance()
            right = self.term()
            node = BinaryArithmetic(MATH_OPS[op_tok.kind], node, right)
            node.line = op_tok.line
        return node

    # term -> factor ((*|/|mod) factor)*
    def term(self):
        node = self.factor()
        while self.at("MULTIPLY", "DIVIDE", "MODULUS"):
            op_tok = self.advance()
            right = self.factor()
            node = BinaryArithmetic(MATH_OPS[op_tok.kind], node, right)
            node.line = op_tok.line
        return node

    # factor -> (expression) | NUMBER | -NUMBER | IDENT[expression] | literal
    def factor(self):
        tok = self.peek()
        if tok is None:
            self.error_here("Expected an expression")

        if tok.kind == "PARENTHESIS_L":
            self.advance()
            node = self.expression()
            self.eat("PARENTHESIS_R", "')'")
            return node

        if tok.kind == "NUMBER":
            self.advance()
            node = number_literal(tok)
        elif tok.kind == "MINUS":
            self.advance()
            node = number_literal(self.eat("NUMBER", "number after '-'"))
            node.value = -node.value
        elif tok.kind == "IDENTIFIER":
            self.advance()
            index = None
            if self.match("INDEX_L"):
                index = self.expression()
                self.eat("INDEX_R", "']'")
            node = VariableReference(tok.text, index)
        elif tok.kind == "STRINGLITERAL":
            self.advance()
            node = StringLiteral(tok.text)
        elif tok.kind == "CHARACTERLITERAL":
            self.advance()
            node = char_literal(tok)
        elif tok.kind in ("TRUE", "FALSE"):
            self.advance()
            node = BooleanLiteral(tok.kind == "TRUE")
        else:
            self.error_here("Expected an expression")

        node.line = tok.line
        return node


# ---------- HELPERS ----------
TYPE_TAGS = {
    "INTEGER": INTEGER,
    "REAL": REAL,
    "STRING": STRING,
    "CHARACTER": CHARACTER,
    "BOOLEAN": BOOLEAN,
}

MATH_OPS = {
    "PLUS": "+",
    "MINUS": "-",
    "MULTIPLY": "*",
    "DIVIDE": "/",
    "MODULUS": "mod",
}

COMPARE_OPS = {
    "EQUALS": "=",
    "NOT_EQUAL": "<>",
    "LESS_THAN": "<",
    "GREATER_THAN": ">",
    "LESS_OR_EQUAL": "<=",
    "GREATER_OR_EQUAL": ">=",
}


def number_literal(tok):
    if "." in tok.text:
        node = RealLiteral(to_single(float(tok.text)))
    else:
        node = IntegerLiteral(int(tok.text))
    node.line = tok.line
    return node


def char_literal(tok):
    if len(tok.text) != 1:
        raise ShankSyntaxError("Character literal must hold exactly one character", tok)
    node = CharLiteral(tok.text)
    node.line = tok.line
    return node


def literal_type(literal):
    if isinstance(literal, IntegerLiteral):
        return INTEGER
    if isinstance(literal, RealLiteral):
        return REAL
    if isinstance(literal, StringLiteral):
        return STRING
    if isinstance(literal, CharLiteral):
        return CHARACTER
    return BOOLEAN


def parse_tokens(tokens):
    return Parser(tokens).parse()
