import re
from typing import List, Optional, Sequence

INDENT = '    '

BLOCK_KEYWORD = re.compile(r'^(async\s+def|def|class|function|if|for|while|try|with)\b')
DEFINITION = re.compile(r'^(async\s+def|def|class|function)\b')
CONTINUATION = re.compile(r'^(else|elif|except|finally|catch)\b')

# A bare call such as "greet(name)" or "print(f(4))" sitting on its own line
STANDALONE_CALL = re.compile(r'^\w+\(.*\)$')
OUTPUT_CALL = re.compile(r'^(print|printf|puts|echo)\b')
NEW_BLOCK_START = re.compile(r'^(def|class|if|for|while)\b')


def _opens_block(line: str) -> bool:
    return line.endswith(':') or line.endswith('{')


def _indent(line: str, depth: int) -> str:
    return f'{INDENT * depth}{line}'


def _is_top_level_call(line: str, next_line: Optional[str], depth: int) -> bool:
    """
    A bare call followed by a blank line or a new block is treated as module
    level. Output calls such as print() only qualify as the last statement.
    """
    if depth == 0 or not STANDALONE_CALL.match(line):
        return False
    if next_line is None:
        return True
    following = next_line.strip()
    if OUTPUT_CALL.match(line):
        return not following
    return not following or bool(NEW_BLOCK_START.match(following))


def restore_indentation(lines: Sequence[str]) -> List[str]:
    """
    Rebuild indentation for code lines whose leading whitespace was lost
    (typically by OCR).

    Each line is trimmed and re-indented by 4 spaces per open block.
    Block openers are lines ending in ':' or '{'; function and class
    definitions start again at column 0. The output always has the same
    number of lines as the input and blank lines stay blank.
    """
    restored = []
    open_blocks = []

    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if not line:
            restored.append('')
            continue

        next_line = lines[index + 1] if index + 1 < len(lines) else None

        if BLOCK_KEYWORD.match(line) and _opens_block(line):
            if DEFINITION.match(line):
                open_blocks.clear()
            restored.append(_indent(line, len(open_blocks)))
            open_blocks.append(line[-1])

        elif CONTINUATION.match(line):
            if open_blocks:
                open_blocks.pop()
            restored.append(_indent(line, len(open_blocks)))
            if _opens_block(line):
                open_blocks.append(line[-1])

        elif line.startswith('}'):
            if open_blocks:
                open_blocks.pop()
            restored.append(_indent(line, len(open_blocks)))
            # "} else {"
            if len(line) > 1 and line.endswith('{'):
                open_blocks.append('{')

        elif _is_top_level_call(line, next_line, len(open_blocks)):
            open_blocks.clear()
            restored.append(line)

        elif _opens_block(line):
            restored.append(_indent(line, len(open_blocks)))
            open_blocks.append(line[-1])

        else:
            restored.append(_indent(line, len(open_blocks)))

    return restored
