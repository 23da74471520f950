import ast
import math
import operator as op
from decimal import Decimal, ROUND_HALF_UP

_ALLOWED_OPS = {
    ast.Add: op.add,
    ast.Sub: op.sub,
    ast.Mult: op.mul,
    ast.Div: op.truediv,
    ast.USub: op.neg,
    ast.UAdd: op.pos,
}

_CENT = Decimal("0.01")


def parse_rate_expr(expr: str) -> float:
    """
    Parse a simple arithmetic expression safely.
    Allowed: numbers, + - * /, parentheses, unary +/-
    Examples: "30", "1,200/40", "(25+5)/2"
    """
    if expr is None:
        raise ValueError("Rate is empty")

    s = str(expr).strip().replace(",", "")
    if not s:
        raise ValueError("Rate is empty")

    try:
        node = ast.parse(s, mode="eval").body
    except SyntaxError as exc:
        raise ValueError(f"Rate is not a number: {expr!r}") from exc

    def _eval(n):
        if isinstance(n, ast.Constant) and type(n.value) in (int, float):
            return float(n.value)
        if isinstance(n, ast.UnaryOp) and type(n.op) in _ALLOWED_OPS:
            return _ALLOWED_OPS[type(n.op)](_eval(n.operand))
        if isinstance(n, ast.BinOp) and type(n.op) in _ALLOWED_OPS:
            return _ALLOWED_OPS[type(n.op)](_eval(n.left), _eval(n.right))
        raise ValueError("Unsupported expression")

    try:
        val = _eval(node)
    except ZeroDivisionError as exc:
        raise ValueError("Division by zero") from exc
    if not math.isfinite(val):
        raise ValueError("Invalid numeric result")
    return val


def parse_amount(value) -> float:
    """Wire amounts arrive as decimal strings; anything unreadable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    s = str(value).strip().replace(",", "")
    if not s:
        return 0.0
    try:
        val = float(s)
    except ValueError:
        return 0.0
    return val if math.isfinite(val) else 0.0


def format_amount(value) -> str:
    # "18" -> "18.00", 12.345 -> "12.35"
    return str(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def format_margin(value: float) -> str:
    return f"{value:.1f}%"
