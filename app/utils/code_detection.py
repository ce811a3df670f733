import re


# Tested against the untrimmed line
INDENTED_LINE = re.compile(r'^ {2,}\S')

# Tested against the trimmed line. Case-sensitive: source keywords are lowercase.
KEYWORD_PATTERNS = [
    r'\bdef\s+\w+\s*\(',
    r'\bfunction\s*\w*\s*\(',
    r'^class\s+\w+',
    r'\b(if|for|while)\s*\(.*\)',
    r'^(if|elif|for|while)\s+.+[:{]$',
    r'^(else|elif)\b.*[:{]$',
    r'^return\b',
    r'\bprint\s*\(',
    r'\bconsole\.log\s*\(',
    r'^import\s+[\w.]+',
    r'^from\s+[\w.]+\s+import\b',
    r'\binclude\s*<',
    r'\busing\s+namespace\b',
    r'^(public|private|protected)\b',
    r'\bint\s+main\s*\(',
    r'\b(var|let|const)\s+\w+\s*=',
    r'^(int|float|double|char|long|short|bool|void|string|String|unsigned)\s+\**\w+\s*(=|;|\(|\[)',
]

STRUCTURE_PATTERNS = [
    r'\{.*\}',                   # brace-delimited block
    r'<[A-Za-z][\w-]*[^>]*>',    # html/xml tag
    r'^\s*(#|//)',               # comment marker
    r'\b\w+\s*=\s*\w+\s*\(',     # x = f(
]

_KEYWORD_REGEXES = [re.compile(pattern) for pattern in KEYWORD_PATTERNS]
_STRUCTURE_REGEXES = [re.compile(pattern) for pattern in STRUCTURE_PATTERNS]


def is_code_line(line):
    """Return True if a single line of text looks like source code."""
    if not line or not line.strip():
        return False

    if INDENTED_LINE.match(line):
        return True

    trimmed = line.strip()
    for regex in _KEYWORD_REGEXES:
        if regex.search(trimmed):
            return True

    for regex in _STRUCTURE_REGEXES:
        if regex.search(trimmed):
            return True

    return False


def has_code_content(text):
    """Return True if any line of a multi-line text is a code line."""
    if not text:
        return False
    return any(is_code_line(line) for line in text.split('\n'))
