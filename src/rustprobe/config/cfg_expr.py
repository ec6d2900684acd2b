"""
Parsing and evaluation of rustc `cfg` predicates.

`rustc --print=cfg` emits one predicate per line, either a bare name
(`unix`) or a key/value pair (`target_os="linux"`). Cargo configuration and
dependency declarations refer to those predicates through expressions such
as `cfg(all(unix, not(target_os = "macos")))`.

Grammar accepted by CfgExpr.parse:
    expr  := IDENT
           | IDENT '=' STRING
           | 'not' '(' expr ')'
           | 'all' '(' [expr (',' expr)* [',']] ')'
           | 'any' '(' [expr (',' expr)* [',']] ')'
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple


class CfgParseError(Exception):
    """Raised when a cfg predicate or expression cannot be parsed."""

    pass


@dataclass(frozen=True)
class Cfg:
    """A single predicate reported by the compiler.

    Attributes:
        name: Predicate name (e.g., "unix", "target_os")
        value: Quoted value for key/value predicates, None for bare names
    """

    name: str
    value: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "Cfg":
        """Parse one line of `--print=cfg` output.

        Args:
            text: Predicate text such as `unix` or `target_os="linux"`

        Returns:
            Parsed Cfg

        Raises:
            CfgParseError: If the text is not a name or name="value" pair
        """
        tokens = _Tokenizer(text)
        token = tokens.next()
        if token is None or token[0] != "ident":
            raise CfgParseError(f"expected identifier, found `{text}`")
        name = token[1]
        token = tokens.next()
        if token is None:
            return cls(name)
        if token[0] != "=":
            raise CfgParseError(f"unexpected content `{text}` found after cfg expression")
        token = tokens.next()
        if token is None or token[0] != "string":
            raise CfgParseError(f"expected a string after `=` in `{text}`")
        if tokens.next() is not None:
            raise CfgParseError(f"unexpected content `{text}` found after cfg expression")
        return cls(name, token[1])

    def __str__(self) -> str:
        if self.value is None:
            return self.name
        return f'{self.name}="{self.value}"'


class CfgExpr(ABC):
    """Boolean expression over cfg predicates."""

    @abstractmethod
    def matches(self, cfgs: Sequence[Cfg]) -> bool:
        """Whether the expression holds for a platform with these predicates."""

    @staticmethod
    def parse(text: str) -> "CfgExpr":
        """Parse a cfg expression (without the surrounding `cfg(...)`).

        Raises:
            CfgParseError: If the expression is malformed
        """
        tokens = _Tokenizer(text)
        expr = _parse_expr(tokens, text)
        if tokens.next() is not None:
            raise CfgParseError(f"unexpected content found after cfg expression in `{text}`")
        return expr

    @staticmethod
    def matches_key(key: str, cfgs: Sequence[Cfg]) -> bool:
        """Check whether a `cfg(...)` config section key matches.

        Keys that are not wrapped in `cfg(...)` or that fail to parse do
        not match.
        """
        key = key.strip()
        if not (key.startswith("cfg(") and key.endswith(")")):
            return False
        try:
            expr = CfgExpr.parse(key[4:-1])
        except CfgParseError:
            return False
        return expr.matches(cfgs)


@dataclass(frozen=True)
class Value(CfgExpr):
    cfg: Cfg

    def matches(self, cfgs: Sequence[Cfg]) -> bool:
        return self.cfg in cfgs

    def __str__(self) -> str:
        return str(self.cfg)


@dataclass(frozen=True)
class Not(CfgExpr):
    expr: CfgExpr

    def matches(self, cfgs: Sequence[Cfg]) -> bool:
        return not self.expr.matches(cfgs)

    def __str__(self) -> str:
        return f"not({self.expr})"


@dataclass(frozen=True)
class All(CfgExpr):
    exprs: Tuple[CfgExpr, ...]

    def matches(self, cfgs: Sequence[Cfg]) -> bool:
        return all(e.matches(cfgs) for e in self.exprs)

    def __str__(self) -> str:
        return "all(" + ", ".join(str(e) for e in self.exprs) + ")"


@dataclass(frozen=True)
class Any(CfgExpr):
    exprs: Tuple[CfgExpr, ...]

    def matches(self, cfgs: Sequence[Cfg]) -> bool:
        return any(e.matches(cfgs) for e in self.exprs)

    def __str__(self) -> str:
        return "any(" + ", ".join(str(e) for e in self.exprs) + ")"


@dataclass(frozen=True)
class Platform:
    """Platform restriction of a dependency.

    Either a plain target name (`x86_64-pc-windows-msvc`) or a cfg
    expression (`cfg(windows)`).
    """

    name: Optional[str] = None
    expr: Optional[CfgExpr] = None

    @classmethod
    def parse(cls, text: str) -> "Platform":
        text = text.strip()
        if text.startswith("cfg(") and text.endswith(")"):
            return cls(expr=CfgExpr.parse(text[4:-1]))
        if not text or any(c.isspace() for c in text):
            raise CfgParseError(f"invalid target name `{text}`")
        return cls(name=text)

    def matches(self, name: str, cfgs: Sequence[Cfg]) -> bool:
        if self.expr is not None:
            return self.expr.matches(cfgs)
        return self.name == name

    def __str__(self) -> str:
        if self.expr is not None:
            return f"cfg({self.expr})"
        return self.name or ""


class _Tokenizer:
    """Splits cfg text into (kind, text) tokens."""

    def __init__(self, text: str):
        self._tokens: Iterator[Tuple[str, str]] = iter(self._tokenize(text))
        self._peeked: Optional[Tuple[str, str]] = None
        self._has_peeked = False

    @staticmethod
    def _tokenize(text: str) -> List[Tuple[str, str]]:
        tokens: List[Tuple[str, str]] = []
        i = 0
        while i < len(text):
            c = text[i]
            if c.isspace():
                i += 1
            elif c in "(),=":
                tokens.append((c, c))
                i += 1
            elif c == '"':
                end = text.find('"', i + 1)
                if end == -1:
                    raise CfgParseError(f"unterminated string in cfg `{text}`")
                tokens.append(("string", text[i + 1:end]))
                i = end + 1
            elif c.isalpha() or c == "_":
                start = i
                while i < len(text) and (text[i].isalnum() or text[i] == "_"):
                    i += 1
                tokens.append(("ident", text[start:i]))
            else:
                raise CfgParseError(f"unexpected character `{c}` in cfg `{text}`")
        return tokens

    def peek(self) -> Optional[Tuple[str, str]]:
        if not self._has_peeked:
            self._peeked = next(self._tokens, None)
            self._has_peeked = True
        return self._peeked

    def next(self) -> Optional[Tuple[str, str]]:
        token = self.peek()
        self._has_peeked = False
        return token


def _expect(tokens: _Tokenizer, kind: str, text: str) -> None:
    token = tokens.next()
    if token is None or token[0] != kind:
        found = token[1] if token else "end of input"
        raise CfgParseError(f"expected `{kind}`, found `{found}` in `{text}`")


def _parse_expr(tokens: _Tokenizer, text: str) -> CfgExpr:
    token = tokens.next()
    if token is None or token[0] != "ident":
        found = token[1] if token else "end of input"
        raise CfgParseError(f"expected identifier, found `{found}` in `{text}`")
    name = token[1]
    following = tokens.peek()

    if name in ("all", "any", "not") and following is not None and following[0] == "(":
        tokens.next()
        if name == "not":
            inner = _parse_expr(tokens, text)
            _expect(tokens, ")", text)
            return Not(inner)
        exprs: List[CfgExpr] = []
        while True:
            following = tokens.peek()
            if following is not None and following[0] == ")":
                tokens.next()
                break
            exprs.append(_parse_expr(tokens, text))
            following = tokens.peek()
            if following is not None and following[0] == ",":
                tokens.next()
            elif following is None or following[0] != ")":
                raise CfgParseError(f"expected `,` or `)` in `{text}`")
        return All(tuple(exprs)) if name == "all" else Any(tuple(exprs))

    if following is not None and following[0] == "=":
        tokens.next()
        value = tokens.next()
        if value is None or value[0] != "string":
            raise CfgParseError(f"expected a string after `=` in `{text}`")
        return Value(Cfg(name, value[1]))
    return Value(Cfg(name))
