import logging
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)

INT_MIN = -2 ** 31
INT_MAX = 2 ** 31 - 1

OPERATORS = "+-*/="


# Errors

class CalcError(Exception):
    pass

class InvalidCharacter(CalcError):
    def __init__(self, char, position):
        super().__init__(f"Invalid character {char!r} at position {position}")
        self.char = char
        self.position = position

class IntegerOverflow(CalcError):
    def __init__(self, text):
        shown = text if len(text) <= 24 else f"{text[:20]}... ({len(text)} digits)"
        super().__init__(f"Integer overflow: {shown} does not fit in 32 bits")
        self.text = text

class UnexpectedToken(CalcError):
    def __init__(self, token, expected):
        super().__init__(f"Expected {expected}, got {token}")
        self.token = token
        self.expected = expected

class InvalidAssignmentTarget(CalcError):
    def __init__(self, target):
        super().__init__(f"Cannot assign to {type(target).__name__}")
        self.target = target

class UnknownIdentifier(CalcError):
    def __init__(self, name):
        super().__init__(f"Unknown identifier: {name}")
        self.name = name

class DivisionByZero(CalcError):
    def __init__(self, expression):
        super().__init__("Division by zero")
        self.expression = expression

class NestingTooDeep(CalcError):
    def __init__(self, stage):
        super().__init__(f"Expression nested too deeply to {stage}")
        self.stage = stage


# Tokens

class Token:
    pass

@dataclass(frozen=True)
class Int(Token):
    value: int

@dataclass(frozen=True)
class OpenParen(Token):
    pass

@dataclass(frozen=True)
class ClosedParen(Token):
    pass

@dataclass(frozen=True)
class Operator(Token):
    symbol: str

@dataclass(frozen=True)
class Identifier(Token):
    name: str

@dataclass(frozen=True)
class EndOfInput(Token):
    pass


# Expression tree

class Expr:
    pass

@dataclass(frozen=True)
class IntLiteral(Expr):
    value: int

@dataclass(frozen=True)
class Name(Expr):
    name: str

@dataclass(frozen=True)
class Add(Expr):
    left: Expr
    right: Expr

@dataclass(frozen=True)
class Subtract(Expr):
    left: Expr
    right: Expr

@dataclass(frozen=True)
class Multiply(Expr):
    left: Expr
    right: Expr

@dataclass(frozen=True)
class Divide(Expr):
    left: Expr
    right: Expr

@dataclass(frozen=True)
class Assign(Expr):
    target: Expr
    value: Expr


def is_digit(c): return "0" <= c <= "9"
def is_alpha(c): return c.isascii() and c.isalpha()

def checked(value, text=None):
    if not INT_MIN <= value <= INT_MAX:
        raise IntegerOverflow(text if text is not None else str(value))
    return value


class Scanner:
    def __init__(self, src):
        self._src = src
        self._pos = 0

    def tokenize(self):
        tokens = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if isinstance(token, EndOfInput):
                break
        logger.debug("Scanned %d tokens: %s", len(tokens), tokens)
        return tokens

    def next_token(self):
        while self._current_char() in (" ", "\t", "\r", "\n"):
            self._advance()

        match self._current_char():
            case "":
                return EndOfInput()
            case "(":
                self._advance()
                return OpenParen()
            case ")":
                self._advance()
                return ClosedParen()
            case ch if ch in OPERATORS:
                self._advance()
                return Operator(ch)
            case ch if is_digit(ch):
                return self._number()
            case ch if is_alpha(ch):
                return self._name()
            case invalid:
                raise InvalidCharacter(invalid, self._pos)

    def _number(self):
        start = self._pos
        while is_digit(self._current_char()):
            self._advance()
        text = self._src[start:self._pos]
        # INT_MAX has 10 digits; longer runs never reach int().
        if len(text.lstrip("0")) > 10:
            raise IntegerOverflow(text)
        return Int(checked(int(text), text))

    def _name(self):
        start = self._pos
        while is_alpha(self._current_char()):
            self._advance()
        return Identifier(self._src[start:self._pos])

    def _advance(self):
        self._pos += 1

    def _current_char(self):
        if self._pos < len(self._src):
            return self._src[self._pos]
        else:
            return ""


class Parser:
    """Recursive descent over a token list ending in EndOfInput.

    Precedence from loosest to tightest: assignment, additive,
    multiplicative, factor. With strict=False tokens left over after a
    complete expression are ignored (with a warning); strict=True rejects
    them.
    """

    def __init__(self, tokens, strict=False):
        self._tokens = tokens
        self._pos = 0
        self._strict = strict

    def parse(self):
        try:
            expr = self._expression()
        except RecursionError as e:
            raise NestingTooDeep("parse") from e
        if not isinstance(leftover := self._current_token(), EndOfInput):
            if self._strict:
                raise UnexpectedToken(leftover, "end of input")
            logger.warning("Ignoring trailing tokens starting at %s", leftover)
        logger.debug("Parsed %s tree from %d tokens", type(expr).__name__, len(self._tokens))
        return expr

    def _expression(self):
        left = self._additive()
        while self._current_token() == Operator("="):
            self._advance()
            left = Assign(left, self._expression())
        return left

    def _additive(self):
        ops = {"+": Add, "-": Subtract}
        left = self._term()
        while (op := self._operator_in(ops)) is not None:
            self._advance()
            left = ops[op](left, self._term())
        return left

    def _term(self):
        ops = {"*": Multiply, "/": Divide}
        left = self._factor()
        while (op := self._operator_in(ops)) is not None:
            self._advance()
            left = ops[op](left, self._factor())
        return left

    def _factor(self):
        match self._current_token():
            case Int(value):
                self._advance()
                return IntLiteral(value)
            case Identifier(name):
                self._advance()
                return Name(name)
            case OpenParen():
                return self._paren()
            case unexpected:
                raise UnexpectedToken(unexpected, "integer, identifier or `(`")

    def _paren(self):
        self._advance()
        expr = self._expression()
        self._consume(ClosedParen())
        return expr

    def _operator_in(self, ops):
        match self._current_token():
            case Operator(symbol) if symbol in ops:
                return symbol
            case _:
                return None

    def _consume(self, expected):
        if self._current_token() != expected:
            raise UnexpectedToken(self._current_token(), expected)
        return self._advance()

    def _current_token(self):
        # Past the end reads as EndOfInput so a list without one cannot run off.
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return EndOfInput()

    def _advance(self):
        self._pos += 1
        return self._tokens[self._pos - 1]


class Environment:
    def __init__(self, bindings=None):
        self._vars = dict(bindings or {})

    def __repr__(self):
        return "[" + ", ".join(f"{k}={v}" for k, v in self._vars.items()) + "]"

    def __contains__(self, name):
        return name in self._vars

    def __len__(self):
        return len(self._vars)

    def define(self, name, val):
        self._vars[name] = val
        return val

    def lookup(self, name):
        if name in self._vars:
            return self._vars[name]
        raise UnknownIdentifier(name)

    def bindings(self):
        return dict(self._vars)


def divide(left, right):
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


class Evaluator:
    def evaluate(self, expr, env):
        match expr:
            case IntLiteral(value):
                return value
            case Name(name):
                return env.lookup(name)
            case Assign(Name(name), value):
                return env.define(name, self.evaluate(value, env))
            case Assign(target, _):
                raise InvalidAssignmentTarget(target)
            case Add() | Subtract() | Multiply() | Divide():
                return self._evaluate_chain(expr, env)
            case unexpected:
                raise TypeError(f"Not an expression: {unexpected!r}")

    def _evaluate_chain(self, expr, env):
        # Walk the left spine iteratively; `1 + 1 + ... + 1` leans left.
        spine = []
        while isinstance(expr, (Add, Subtract, Multiply, Divide)):
            spine.append(expr)
            expr = expr.left
        val = self.evaluate(expr, env)
        for node in reversed(spine):
            val = self._apply(node, val, self.evaluate(node.right, env))
        return val

    def _apply(self, node, left, right):
        match node:
            case Add():
                return checked(left + right)
            case Subtract():
                return checked(left - right)
            case Multiply():
                return checked(left * right)
            case Divide():
                if right == 0:
                    raise DivisionByZero(node)
                return checked(divide(left, right))


def tokenize_all(src):
    return Scanner(src).tokenize()

def parse(tokens, strict=False):
    return Parser(tokens, strict).parse()

def evaluate(expr, environment=None):
    """Evaluate a tree; without an environment a fresh one is used and thrown away."""
    if environment is None:
        environment = Environment()
    try:
        val = Evaluator().evaluate(expr, environment)
    except RecursionError as e:
        raise NestingTooDeep("evaluate") from e
    logger.debug("Evaluated %s -> %d", type(expr).__name__, val)
    return val


class Interpreter:
    """Runs scan, parse and evaluate against one environment it keeps."""

    def __init__(self, environment=None, strict=False):
        self.env = environment if environment is not None else Environment()
        self._strict = strict

    def scan(self, src):
        return tokenize_all(src)

    def parse(self, tokens):
        return parse(tokens, self._strict)

    def ast(self, src):
        return self.parse(self.scan(src))

    def evaluate(self, expr):
        return evaluate(expr, self.env)

    def go(self, src):
        return self.evaluate(self.ast(src))

    def go_all(self, srcs):
        val = None
        for src in srcs:
            val = self.go(src)
        if val is None:
            raise UnexpectedToken(EndOfInput(), "at least one expression")
        return val


def interpret(src, environment=None):
    return Interpreter(environment).go(src)

def interpret_sequence(srcs):
    return Interpreter().go_all(srcs)


def setup_logging(level="INFO", log_file=None):
    config = {
        "level": getattr(logging, level.upper(), logging.INFO),
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    }
    if log_file:
        config["filename"] = log_file
    else:
        config["stream"] = sys.stdout
    logging.basicConfig(**config)


def main():
    setup_logging("WARNING")
    sample = "(1 + 2) * (3 - 6)"
    tokens = tokenize_all(sample)
    print(f"1 = {evaluate(IntLiteral(1))}") # -> 1 = 1
    print(f"{sample} = {evaluate(parse(tokens))}") # -> (1 + 2) * (3 - 6) = -9


if __name__ == "__main__":
    main()
