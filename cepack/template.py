"""Template and expression resolution utilities."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from xml.sax.saxutils import escape
import ast
import operator
import re


_PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")
_EXPRESSION_PATTERN = re.compile(r"^\s*\[\[(?P<expr>.*)\]\]\s*$", re.DOTALL)
_SINGLE_PLACEHOLDER_PATTERN = re.compile(r"^\s*\{\{([^{}]+)\}\}\s*$")
_DOCUMENT_PATTERN = re.compile(
    r"\[\[(?P<expr>.+?)\]\]|\{\{(?P<escape>-)?(?P<path>[^{}]+)\}\}",
    re.DOTALL,
)
_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

_ALLOWED_BIN_OPS: dict[type[ast.AST], Any] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_ALLOWED_UNARY_OPS: dict[type[ast.AST], Any] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_ALLOWED_COMPARISONS: dict[type[ast.AST], Any] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}


class TemplateError(ValueError):
    """Raised when template resolution fails."""


@dataclass(slots=True)
class TemplateResolver:
    """Resolves configuration strings against a nested mapping context.

    Values reached through a placeholder are themselves resolved, so a context
    entry may refer to another one; cycles raise :class:`TemplateError`.
    """

    context: Mapping[str, Any]
    _cache: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def resolve(self, value: Any) -> Any:
        return self._resolve_value(value, stack=[])

    def _resolve_value(self, value: Any, *, stack: list[str]) -> Any:
        if isinstance(value, str):
            return self._resolve_string(value, stack=stack)
        if isinstance(value, list):
            return [self._resolve_value(item, stack=list(stack)) for item in value]
        if isinstance(value, dict):
            return {key: self._resolve_value(val, stack=list(stack)) for key, val in value.items()}
        return value

    def _resolve_string(self, value: str, *, stack: list[str]) -> Any:
        expression_match = _EXPRESSION_PATTERN.match(value)
        if expression_match:
            expr = self._substitute(expression_match.group("expr"), stack=stack, for_expression=True)
            return evaluate_expression(expr.strip())
        placeholder_match = _SINGLE_PLACEHOLDER_PATTERN.match(value)
        if placeholder_match:
            return self._resolve_path(placeholder_match.group(1).strip(), stack=stack)
        return self._substitute(value, stack=stack, for_expression=False)

    def _substitute(self, text: str, *, stack: list[str], for_expression: bool) -> str:
        def replacement(match: re.Match[str]) -> str:
            result = self._resolve_path(match.group(1).strip(), stack=stack)
            if for_expression or isinstance(result, (dict, list)):
                return repr(result)
            return str(result)

        if not _PLACEHOLDER_PATTERN.search(text):
            return text
        return _PLACEHOLDER_PATTERN.sub(replacement, text)

    def _resolve_path(self, path: str, *, stack: list[str]) -> Any:
        if path in self._cache:
            return self._cache[path]
        if path in stack:
            cycle = " -> ".join(stack + [path])
            raise TemplateError(f"Circular dependency detected: {cycle}")

        raw_value = lookup_path(self.context, path)
        stack.append(path)
        resolved = self._resolve_value(raw_value, stack=stack)
        stack.pop()
        self._cache[path] = resolved
        return resolved


@dataclass(frozen=True, slots=True)
class DocumentTemplate:
    """A text document with ``{{ path }}``, ``{{- path }}`` and ``[[ expr ]]`` directives.

    The text is scanned once: values produced by a directive are emitted as-is
    and never interpreted again.
    """

    text: str
    source: str = "<string>"

    @classmethod
    def from_file(cls, path: Path) -> "DocumentTemplate":
        return cls(text=path.read_text(encoding="utf-8"), source=str(path))

    def render(self, context: Mapping[str, Any]) -> str:
        def replacement(match: re.Match[str]) -> str:
            expr = match.group("expr")
            if expr is not None:
                substituted = _PLACEHOLDER_PATTERN.sub(
                    lambda inner: repr(lookup_path(context, inner.group(1).strip())),
                    expr,
                )
                return format_value(evaluate_expression(substituted.strip()))
            value = format_value(lookup_path(context, match.group("path").strip()))
            if match.group("escape"):
                return escape(value, _XML_ENTITIES)
            return value

        try:
            return _DOCUMENT_PATTERN.sub(replacement, self.text)
        except TemplateError as exc:
            raise TemplateError(f"{self.source}: {exc}") from exc


def lookup_path(context: Mapping[str, Any], path: str) -> Any:
    current: Any = context
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
            continue
        if isinstance(current, (list, tuple)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError) as exc:
                raise TemplateError(f"Invalid list index '{part}' for path '{path}'") from exc
            continue
        raise TemplateError(f"Cannot resolve path '{path}' in template context")
    return current


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "\n".join(format_value(item) for item in value)
    return str(value)


def evaluate_expression(expression: str) -> Any:
    try:
        node = ast.parse(expression, mode="eval")
    except SyntaxError as exc:
        raise TemplateError(f"Invalid expression syntax: {expression}") from exc
    return _ExpressionEvaluator().visit(node)


class _ExpressionEvaluator(ast.NodeVisitor):
    def visit(self, node: ast.AST) -> Any:  # type: ignore[override]
        if isinstance(node, ast.Expression):
            return self.visit(node.body)
        if isinstance(node, ast.Constant):
            return node.value
        if isinstance(node, ast.Name):
            if node.id in {"True", "False", "None"}:
                return {"True": True, "False": False, "None": None}[node.id]
            raise TemplateError(f"Name '{node.id}' is not allowed in expressions")
        if isinstance(node, ast.BinOp):
            op_type = type(node.op)
            if op_type not in _ALLOWED_BIN_OPS:
                raise TemplateError(f"Operator '{op_type.__name__}' is not allowed")
            return _ALLOWED_BIN_OPS[op_type](self.visit(node.left), self.visit(node.right))
        if isinstance(node, ast.UnaryOp):
            op_type = type(node.op)
            if op_type not in _ALLOWED_UNARY_OPS:
                raise TemplateError(f"Unary operator '{op_type.__name__}' is not allowed")
            return _ALLOWED_UNARY_OPS[op_type](self.visit(node.operand))
        if isinstance(node, ast.BoolOp):
            values = [bool(self.visit(value)) for value in node.values]
            if isinstance(node.op, ast.And):
                return all(values)
            return any(values)
        if isinstance(node, ast.Compare):
            left = self.visit(node.left)
            for op, comparator in zip(node.ops, node.comparators):
                op_type = type(op)
                if op_type not in _ALLOWED_COMPARISONS:
                    raise TemplateError(f"Comparison operator '{op_type.__name__}' is not allowed")
                right = self.visit(comparator)
                if not _ALLOWED_COMPARISONS[op_type](left, right):
                    return False
                left = right
            return True
        if isinstance(node, ast.IfExp):
            condition = self.visit(node.test)
            return self.visit(node.body if condition else node.orelse)
        if isinstance(node, ast.List):
            return [self.visit(element) for element in node.elts]
        if isinstance(node, ast.Tuple):
            return tuple(self.visit(element) for element in node.elts)
        raise TemplateError(f"Expression node '{type(node).__name__}' is not allowed")
