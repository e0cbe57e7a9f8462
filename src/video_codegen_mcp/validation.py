"""Three-layer validation for model-written composition code.

Syntax, Security and Structure are independent pure checks over the
code text; ``validate_all`` runs every layer so the next prompt can list
every problem at once. None of this is a parser or a sandbox: brace
counting is fooled by braces inside string literals, and the denylist
is defeated by string concatenation. The rendering host must still run
the code in a capability-restricted realm.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

MIN_CODE_LENGTH = 50
MIN_COMPOSITION_LENGTH = 500
MAX_UNCLOSED_JSX_OPENERS = 3

_BRACKET_PAIRS: tuple[tuple[str, str, str], ...] = (
    ("{", "}", "curly braces"),
    ("(", ")", "parentheses"),
    ("[", "]", "square brackets"),
)

_JSX_OPEN = re.compile(r"<([A-Z][\w.]*)\b[^<>]*?(?<!/)>")
_JSX_CLOSE = re.compile(r"</([A-Z][\w.]*)\s*>")

SECURITY_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), label)
    for pattern, label in (
        # network
        (r"\bfetch\s*\(", "fetch()"),
        (r"\bXMLHttpRequest\b", "XMLHttpRequest"),
        (r"\bWebSocket\b", "WebSocket"),
        (r"\bEventSource\b", "EventSource"),
        # dynamic code execution
        (r"\beval\s*\(", "eval()"),
        (r"\bnew\s+Function\b", "new Function"),
        (r"\brequire\s*\(", "require()"),
        (r"\bimport\s*\(", "dynamic import()"),
        # process / filesystem
        (r"\bprocess\.", "process."),
        (r"(?<![\w.$])fs\.", "fs."),
        (r"\bchild_process\b", "child_process"),
        # host objects
        (r"\b__dirname\b", "__dirname"),
        (r"\b__filename\b", "__filename"),
        (r"\bglobalThis\.", "globalThis."),
        (r"\bwindow\.location\b", "window.location"),
        (r"\bdocument\.cookie\b", "document.cookie"),
        (r"\bnavigator\.", "navigator."),
        (r"\blocalStorage\b", "localStorage"),
        (r"\bsessionStorage\b", "sessionStorage"),
        (r"\bindexedDB\b", "indexedDB"),
        (r"\bBuffer\.", "Buffer."),
        (r"\bServiceWorker\b", "ServiceWorker"),
        (r"\bimportScripts\b", "importScripts"),
        # sandbox escapes
        (r"\bthis\.constructor\b", "this.constructor"),
        (r"\bObject\.getPrototypeOf\b", "Object.getPrototypeOf"),
        (r"\barguments\.callee\b", "arguments.callee"),
    )
)

_RETURN_COMPONENT = re.compile(r"\breturn\s+[A-Za-z_$][\w$]*")


@dataclass
class ValidationResult:
    """Aggregated result of one or more validation layers."""

    passed: bool
    issues: list[str] = field(default_factory=list)


def _result(issues: list[str]) -> ValidationResult:
    return ValidationResult(passed=not issues, issues=issues)


def validate_syntax(code: str) -> ValidationResult:
    """Cheap syntax heuristics in lieu of a JavaScript parser.

    Tracks a running balance per bracket pair. The first unmatched closer
    is reported with its line number and that pair is no longer tracked;
    otherwise a non-zero final balance is reported. Also flags likely
    unclosed JSX and code too short to be real.
    """
    issues: list[str] = []

    for opener, closer, name in _BRACKET_PAIRS:
        balance = 0
        for pos, ch in enumerate(code):
            if ch == opener:
                balance += 1
            elif ch == closer:
                balance -= 1
                if balance < 0:
                    line = code.count("\n", 0, pos) + 1
                    issues.append(f"Unmatched closing '{closer}' on line {line} ({name})")
                    break
        else:
            if balance != 0:
                issues.append(f"Unbalanced {name}, off by {abs(balance)}")

    openers = _JSX_OPEN.findall(code)
    closers = _JSX_CLOSE.findall(code)
    if len(openers) > MAX_UNCLOSED_JSX_OPENERS and not closers:
        issues.append(
            f"Possible unclosed JSX tags ({len(openers)} opening tags, 0 closing tags)"
        )

    if len(code.strip()) < MIN_CODE_LENGTH:
        issues.append(f"Code is suspiciously short ({len(code.strip())} chars)")

    return _result(issues)


def validate_security(code: str) -> ValidationResult:
    """Match the code against the sandbox-escape denylist.

    One issue per denylisted construct found; passing means no match.
    """
    issues = [
        f"Forbidden pattern: {label}"
        for pattern, label in SECURITY_PATTERNS
        if pattern.search(code)
    ]
    return _result(issues)


def validate_structure(code: str) -> ValidationResult:
    """Check the code is shaped like a composition the host can execute."""
    issues: list[str] = []
    if not _RETURN_COMPONENT.search(code):
        issues.append("No return statement: code must end with 'return <ComponentName>;'")
    if "Remotion" not in code:
        issues.append("Does not reference Remotion (destructure primitives from the Remotion parameter)")
    if "AbsoluteFill" not in code and "Sequence" not in code:
        issues.append("No AbsoluteFill/Sequence found: compositions need a layout primitive")
    if "<" not in code:
        issues.append("No JSX markup found")
    if len(code) <= MIN_COMPOSITION_LENGTH:
        issues.append(
            f"Code too short for a composition ({len(code)} chars, need more than {MIN_COMPOSITION_LENGTH})"
        )
    return _result(issues)


def validate_all(code: str) -> ValidationResult:
    """Run every layer and return the prefixed, concatenated issues."""
    issues: list[str] = []
    for prefix, check in (
        ("[Syntax]", validate_syntax),
        ("[Security]", validate_security),
        ("[Structure]", validate_structure),
    ):
        issues.extend(f"{prefix} {issue}" for issue in check(code).issues)
    return _result(issues)
