"""Prompt builders for common editor actions.

Each builder returns the mode the prompt should be sent in together with
the prompt text, so callers know whether the request may edit files.
"""

from __future__ import annotations

from aiderlink.commands.formatter import ChatMode


def explain_code(file: str, code: str) -> tuple[ChatMode, str]:
    """Ask for an explanation of a code snippet."""
    return ChatMode.ASK, f"Explain the following code from {file}:\n{code}"


def explain_symbol(file: str, symbol: str, line: str | None = None) -> tuple[ChatMode, str]:
    text = f"Explain the symbol '{symbol}' in {file}"
    if line:
        text += f", as used in this line:\n{line}"
    return ChatMode.ASK, text


def refactor_function(file: str, function: str, instruction: str) -> tuple[ChatMode, str]:
    """Change one function according to ``instruction``."""
    return (
        ChatMode.CODE,
        f"In {file}, refactor the function '{function}': {instruction}",
    )


def implement_todo(file: str, todo: str, context: str | None = None) -> tuple[ChatMode, str]:
    """Implement the TODO comment ``todo`` found in ``file``."""
    text = f"Please implement this TODO comment in {file}: {todo}"
    if context:
        text += f"\nIt appears in this code:\n{context}"
    return ChatMode.CODE, text


def write_unit_tests(file: str, function: str | None = None) -> tuple[ChatMode, str]:
    """Write tests for a whole file or a single function in it."""
    target = f"the function '{function}' in {file}" if function else f"the code in {file}"
    return (
        ChatMode.CODE,
        f"Write unit tests for {target}. Cover normal cases and edge cases, "
        "and follow the test conventions already used in this project.",
    )


def debug_exception(traceback: str) -> tuple[ChatMode, str]:
    """Diagnose a traceback without changing files yet."""
    return (
        ChatMode.ASK,
        "Investigate the following exception and explain its most likely cause "
        f"and how to fix it:\n{traceback}",
    )
