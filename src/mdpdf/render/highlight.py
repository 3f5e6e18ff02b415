"""Per-language lexers for fenced code blocks.

Each lexer scans one line left to right and returns ordered tokens whose
texts concatenate back to the line.
"""

from collections.abc import Callable

from .models import CodeToken, TokenKind

# Fill colors (RGB) per token kind
TOKEN_COLORS: dict[TokenKind, tuple[float, float, float]] = {
    TokenKind.NORMAL: (0.0, 0.0, 0.0),
    TokenKind.KEYWORD: (0.5, 0.0, 0.5),
    TokenKind.COMMAND: (0.0, 0.3, 0.7),
    TokenKind.OPTION: (0.75, 0.4, 0.0),
    TokenKind.STRING: (0.0, 0.5, 0.0),
    TokenKind.NUMBER: (0.65, 0.25, 0.0),
    TokenKind.COMMENT: (0.45, 0.45, 0.45),
}

_C_COMMON = {
    "break", "case", "const", "continue", "default", "do", "else", "enum",
    "for", "goto", "if", "return", "sizeof", "static", "struct", "switch",
    "typedef", "union", "void", "volatile", "while",
}

GENERIC_KEYWORDS: dict[str, frozenset[str]] = {
    "zig": frozenset({
        "addrspace", "align", "allowzero", "and", "anyframe", "anytype", "asm",
        "async", "await", "break", "callconv", "catch", "comptime", "const",
        "continue", "defer", "else", "enum", "errdefer", "error", "export",
        "extern", "fn", "for", "if", "inline", "linksection", "noalias",
        "noinline", "nosuspend", "opaque", "or", "orelse", "packed", "pub",
        "resume", "return", "struct", "suspend", "switch", "test",
        "threadlocal", "try", "union", "unreachable", "usingnamespace", "var",
        "volatile", "while", "true", "false", "null", "undefined",
    }),
    "c": frozenset(_C_COMMON | {
        "auto", "char", "double", "extern", "float", "inline", "int", "long",
        "register", "restrict", "short", "signed", "unsigned", "NULL",
    }),
    "cpp": frozenset(_C_COMMON | {
        "auto", "bool", "catch", "char", "class", "constexpr", "delete",
        "double", "explicit", "false", "float", "friend", "int", "long",
        "namespace", "new", "noexcept", "nullptr", "operator", "override",
        "private", "protected", "public", "template", "this", "throw", "true",
        "try", "typename", "using", "virtual",
    }),
    "rust": frozenset({
        "as", "async", "await", "break", "const", "continue", "crate", "dyn",
        "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
        "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
        "self", "Self", "static", "struct", "super", "trait", "true", "type",
        "unsafe", "use", "where", "while",
    }),
    "go": frozenset({
        "break", "case", "chan", "const", "continue", "default", "defer",
        "else", "fallthrough", "for", "func", "go", "goto", "if", "import",
        "interface", "map", "package", "range", "return", "select", "struct",
        "switch", "type", "var", "nil", "true", "false",
    }),
    "javascript": frozenset({
        "async", "await", "break", "case", "catch", "class", "const",
        "continue", "debugger", "default", "delete", "do", "else", "export",
        "extends", "false", "finally", "for", "function", "if", "import", "in",
        "instanceof", "let", "new", "null", "return", "super", "switch", "this",
        "throw", "true", "try", "typeof", "undefined", "var", "void", "while",
        "yield",
    }),
    "java": frozenset({
        "abstract", "boolean", "break", "byte", "case", "catch", "char",
        "class", "const", "continue", "default", "do", "double", "else",
        "enum", "extends", "final", "finally", "float", "for", "if",
        "implements", "import", "instanceof", "int", "interface", "long", "new",
        "null", "package", "private", "protected", "public", "return", "short",
        "static", "super", "switch", "this", "throw", "throws", "try", "void",
        "while", "true", "false",
    }),
}
GENERIC_KEYWORDS["typescript"] = GENERIC_KEYWORDS["javascript"] | {
    "enum", "implements", "interface", "private", "protected", "public",
    "readonly", "type", "namespace", "declare", "abstract",
}

GENERIC_ALIASES = {
    "c++": "cpp",
    "cc": "cpp",
    "h": "c",
    "rs": "rust",
    "golang": "go",
    "js": "javascript",
    "ts": "typescript",
}

SHELL_KEYWORDS = frozenset({
    "if", "then", "else", "elif", "fi", "for", "while", "until", "do",
    "done", "case", "esac", "in", "function", "select", "time", "return",
    "export", "local", "readonly", "declare", "unset", "source",
})

# Keywords after which the next word is a command name
SHELL_COMMAND_CONTEXT = frozenset({"if", "then", "else", "elif", "do"})

SHELL_COMMANDS = frozenset({
    "awk", "cat", "cd", "chmod", "chown", "cp", "curl", "cut", "date", "df",
    "diff", "docker", "du", "echo", "env", "exec", "exit", "find", "git",
    "grep", "gzip", "head", "kill", "less", "ln", "ls", "make", "mkdir", "mv",
    "npm", "pip", "printf", "ps", "pwd", "python", "python3", "read", "rm",
    "rmdir", "rsync", "scp", "sed", "set", "sh", "sleep", "sort", "ssh",
    "sudo", "tail", "tar", "tee", "test", "touch", "tr", "uniq", "unzip",
    "wc", "wget", "which", "xargs", "zig", "zip",
})

JSON_LITERALS = frozenset({"true", "false", "null"})
JSON_NUMBER_CHARS = frozenset("0123456789-+.eE")

_SHELL_WORD_BREAK = " \t;|&$`'\"()<>"


class _TokenBuffer:
    def __init__(self) -> None:
        self.tokens: list[CodeToken] = []

    def push(self, text: str, kind: TokenKind) -> None:
        if not text:
            return
        if self.tokens and self.tokens[-1].kind == kind:
            self.tokens[-1] = CodeToken(text=self.tokens[-1].text + text, kind=kind)
        else:
            self.tokens.append(CodeToken(text=text, kind=kind))


def _scan_quoted(line: str, start: int, quote: str, escapes: bool = True) -> int:
    """End index (exclusive) of the quoted string opening at ``start``."""
    i = start + 1
    while i < len(line):
        if escapes and line[i] == "\\":
            i += 2
            continue
        if line[i] == quote:
            return i + 1
        i += 1
    return len(line)


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or (ch.isascii() and ch.isalpha())


def _is_ident_char(ch: str) -> bool:
    return ch == "_" or (ch.isascii() and ch.isalnum())


def lex_generic(line: str, keywords: frozenset[str]) -> list[CodeToken]:
    """C-family lexer: comments, strings, numbers, keywords."""
    out = _TokenBuffer()
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if line.startswith("//", i):
            out.push(line[i:], TokenKind.COMMENT)
            break
        if ch == '"':
            end = _scan_quoted(line, i, '"')
            out.push(line[i:end], TokenKind.STRING)
            i = end
            continue
        if ch.isascii() and ch.isdigit():
            j = i + 1
            while j < n and (_is_ident_char(line[j]) or line[j] == "."):
                j += 1
            out.push(line[i:j], TokenKind.NUMBER)
            i = j
            continue
        if _is_ident_start(ch):
            j = i + 1
            while j < n and _is_ident_char(line[j]):
                j += 1
            word = line[i:j]
            out.push(word, TokenKind.KEYWORD if word in keywords else TokenKind.NORMAL)
            i = j
            continue

        j = i + 1
        while j < n:
            c = line[j]
            if c == '"' or _is_ident_start(c) or (c.isascii() and c.isdigit()):
                break
            if line.startswith("//", j):
                break
            j += 1
        out.push(line[i:j], TokenKind.NORMAL)
        i = j
    return out.tokens


def lex_json(line: str) -> list[CodeToken]:
    """Structured-data lexer: object keys are keywords, values are strings."""
    out = _TokenBuffer()
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch in " \t":
            j = i
            while j < n and line[j] in " \t":
                j += 1
            out.push(line[i:j], TokenKind.NORMAL)
            i = j
            continue
        if ch == '"':
            end = _scan_quoted(line, i, '"')
            k = end
            while k < n and line[k] in " \t":
                k += 1
            is_key = k < n and line[k] == ":"
            out.push(line[i:end], TokenKind.KEYWORD if is_key else TokenKind.STRING)
            i = end
            continue
        if ch == "-" or (ch.isascii() and ch.isdigit()):
            j = i + 1
            while j < n and line[j] in JSON_NUMBER_CHARS:
                j += 1
            out.push(line[i:j], TokenKind.NUMBER)
            i = j
            continue
        if ch.isascii() and ch.isalpha():
            j = i + 1
            while j < n and line[j].isascii() and line[j].isalpha():
                j += 1
            word = line[i:j]
            out.push(word, TokenKind.KEYWORD if word in JSON_LITERALS else TokenKind.NORMAL)
            i = j
            continue
        out.push(ch, TokenKind.NORMAL)
        i += 1
    return out.tokens


def _scan_command_substitution(line: str, start: int) -> int:
    """End index of ``$(...)`` opening at ``start``, honoring nesting and quotes."""
    depth = 0
    i = start + 1
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch in "\"'":
            i = _scan_quoted(line, i, ch, escapes=ch == '"')
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return n


def _is_assignment(word: str) -> bool:
    name, sep, _ = word.partition("=")
    return bool(sep) and bool(name) and _is_ident_start(name[0]) and all(
        _is_ident_char(c) for c in name
    )


def lex_shell(line: str) -> list[CodeToken]:
    """Shell lexer tracking whether the next word is a command name."""
    out = _TokenBuffer()
    expect_command = True
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        at_boundary = i == 0 or line[i - 1] in " \t;|&("

        if ch in " \t":
            j = i
            while j < n and line[j] in " \t":
                j += 1
            out.push(line[i:j], TokenKind.NORMAL)
            i = j
            continue

        if ch == "#" and at_boundary:
            out.push(line[i:], TokenKind.COMMENT)
            break

        if line.startswith("&&", i) or line.startswith("||", i):
            out.push(line[i : i + 2], TokenKind.NORMAL)
            expect_command = True
            i += 2
            continue

        if ch in ";|":
            out.push(ch, TokenKind.NORMAL)
            expect_command = True
            i += 1
            continue

        if ch == "`":
            end = line.find("`", i + 1)
            end = n if end == -1 else end + 1
            out.push(line[i:end], TokenKind.KEYWORD)
            expect_command = False
            i = end
            continue

        if ch == "$":
            if line.startswith("$(", i):
                end = _scan_command_substitution(line, i)
            elif line.startswith("${", i):
                close = line.find("}", i + 2)
                end = n if close == -1 else close + 1
            else:
                end = i + 1
                while end < n and _is_ident_char(line[end]):
                    end += 1
                if end == i + 1 and end < n and line[end] in "?@#*!$-":
                    end += 1
            out.push(line[i:end], TokenKind.KEYWORD)
            expect_command = False
            i = end
            continue

        if ch in "\"'":
            end = _scan_quoted(line, i, ch, escapes=ch == '"')
            out.push(line[i:end], TokenKind.STRING)
            expect_command = False
            i = end
            continue

        if ch == "-" and at_boundary and i + 1 < n and (line[i + 1] == "-" or line[i + 1].isalpha()):
            j = i + 1
            while j < n and line[j] not in _SHELL_WORD_BREAK:
                j += 1
            out.push(line[i:j], TokenKind.OPTION)
            i = j
            continue

        if ch in "()<>&":
            out.push(ch, TokenKind.NORMAL)
            i += 1
            continue

        j = i
        while j < n and line[j] not in _SHELL_WORD_BREAK:
            j += 1
        word = line[i:j]

        if word.isdigit():
            out.push(word, TokenKind.NUMBER)
            expect_command = False
        elif expect_command and _is_assignment(word):
            out.push(word, TokenKind.NORMAL)
        elif word in SHELL_KEYWORDS:
            out.push(word, TokenKind.KEYWORD)
            expect_command = word in SHELL_COMMAND_CONTEXT
        elif expect_command and word in SHELL_COMMANDS:
            out.push(word, TokenKind.COMMAND)
            expect_command = False
        else:
            out.push(word, TokenKind.NORMAL)
            expect_command = False
        i = j

    return out.tokens


def _plain(line: str) -> list[CodeToken]:
    return [CodeToken(text=line, kind=TokenKind.NORMAL)] if line else []


def lexer_for(language: str | None) -> Callable[[str], list[CodeToken]]:
    """Pick the lexer for a fence language tag (case-insensitive)."""
    tag = (language or "").strip().lower()
    tag = GENERIC_ALIASES.get(tag, tag)
    if tag in GENERIC_KEYWORDS:
        keywords = GENERIC_KEYWORDS[tag]
        return lambda line: lex_generic(line, keywords)
    if tag == "json":
        return lex_json
    if tag in ("sh", "bash", "shell", "zsh", "console"):
        return lex_shell
    return _plain


def highlight_line(language: str | None, line: str) -> list[CodeToken]:
    return lexer_for(language)(line)
