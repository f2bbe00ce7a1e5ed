import logging
from typing import List

from Expressions.errors import LexError

# --- Logger Setup ---
logger = logging.getLogger(__name__)

# --- Lexeme Types ---
LEXEME_NUMBER = 'NUMBER'
LEXEME_IDENT = 'IDENT'
LEXEME_OPERATOR = 'OPERATOR'
LEXEME_LPAREN = 'LPAREN'
LEXEME_RPAREN = 'RPAREN'
LEXEME_EOF = 'EOF'

# Characters that always form a lexeme of their own.
KEY_CHARS = "+-*/^()"
PAREN_TYPES = {
    "(": LEXEME_LPAREN,
    ")": LEXEME_RPAREN,
}


def is_key(ch: str) -> bool:
    return ch != "" and ch in KEY_CHARS


def is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def is_ident_char(ch: str) -> bool:
    # Any printable character that is neither whitespace nor a key character
    # may be part of an identifier, including non-ASCII text.
    if ch == "":
        return False
    return ch.isalnum() or (ch.isprintable() and not ch.isspace() and not is_key(ch))


class Lexeme:
    def __init__(self, type, text, line, column):
        self.type = type
        self.text = text
        # Zero-based position in the split source lines.
        self.line = line
        self.column = column

    def __eq__(self, other):
        if not isinstance(other, Lexeme):
            return NotImplemented
        return (self.type, self.text, self.line, self.column) == \
            (other.type, other.text, other.line, other.column)

    def __repr__(self):
        return f"Lexeme({self.type}, '{self.text}', {self.line + 1}:{self.column + 1})"

    def equals(self, text: str) -> bool:
        return self.type != LEXEME_EOF and self.text == text


class Lexer:
    """Splits source text into lexemes, remembering where each one starts."""

    def __init__(self, text: str):
        self.text = text
        self.lines = text.split("\n")
        self.line = 0
        self.column = 0

    def _current_char(self) -> str:
        line = self.lines[self.line]
        if self.column < len(line):
            return line[self.column]
        if self.line + 1 < len(self.lines):
            return "\n"
        return ""

    def _skip_spaces(self):
        while True:
            ch = self._current_char()
            if ch == "\n":
                self.line += 1
                self.column = 0
            elif ch != "" and ch.isspace():
                self.column += 1
            else:
                return

    def _error(self, message, text):
        raise LexError(message, self.line + 1, self.column + 1, text,
                       self.lines[self.line])

    def _read_number(self) -> Lexeme:
        line = self.lines[self.line]
        end = self.column
        while end < len(line) and is_digit(line[end]):
            end += 1

        if end < len(line) and is_ident_char(line[end]):
            while end < len(line) and is_ident_char(line[end]):
                end += 1
            text = line[self.column:end]
            self._error(f"{text} is not a number.", text)

        return Lexeme(LEXEME_NUMBER, line[self.column:end], self.line, self.column)

    def _read_ident(self) -> Lexeme:
        line = self.lines[self.line]
        end = self.column + 1
        while end < len(line) and is_ident_char(line[end]):
            end += 1
        return Lexeme(LEXEME_IDENT, line[self.column:end], self.line, self.column)

    def _read_key(self) -> Lexeme:
        ch = self.lines[self.line][self.column]
        lexeme_type = PAREN_TYPES.get(ch, LEXEME_OPERATOR)
        return Lexeme(lexeme_type, ch, self.line, self.column)

    def next_lexeme(self) -> Lexeme:
        self._skip_spaces()
        ch = self._current_char()

        if ch == "":
            return Lexeme(LEXEME_EOF, "", self.line, self.column)
        if is_digit(ch):
            lexeme = self._read_number()
        elif is_key(ch):
            lexeme = self._read_key()
        elif is_ident_char(ch):
            lexeme = self._read_ident()
        else:
            self._error(f"Bad symbol '{ch}'", ch)

        self.column += len(lexeme.text)
        return lexeme

    def tokenize(self) -> List[Lexeme]:
        lexemes = []
        while True:
            lexeme = self.next_lexeme()
            lexemes.append(lexeme)
            if lexeme.type == LEXEME_EOF:
                break

        logger.debug(f"Tokenized {len(lexemes)} lexemes")
        return lexemes


def tokenize(text: str) -> List[Lexeme]:
    """Returns the lexemes of ``text``, the last one always being EOF."""
    return Lexer(text).tokenize()
