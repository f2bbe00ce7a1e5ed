import logging
from typing import List, Optional, Sequence

from Expressions.errors import ParseError
from Expressions.expression_tree import (
    Node, PREFIX_OPERATORS, make_binary, make_function, make_number,
    make_prefix_unary, make_variable, tree_depth,
)
from Expressions.lexer import (
    LEXEME_EOF, LEXEME_IDENT, LEXEME_LPAREN, LEXEME_NUMBER, LEXEME_OPERATOR,
    LEXEME_RPAREN, Lexeme, Lexer,
)

# --- Logger Setup ---
logger = logging.getLogger(__name__)

# Binary operators grouped by priority, loosest binding first. Every group
# is parsed left-associatively, '^' included.
OPERATOR_PRIORITIES = [
    ('+', '-'),
    ('*', '/'),
    ('^',),
]

# Parenthesis/function nesting allowed before the parse is refused.
MAX_NESTING_DEPTH = 100
# Operator chains fold into left-deep trees without any nesting, so the
# depth of the finished tree is limited separately.
MAX_TREE_DEPTH = 100


class Parser:
    """Recursive descent parser over a list of lexemes.

    Grammar, loosest binding first::

        expr_0   ::= expr_1 {('+'|'-') expr_1}*
        expr_1   ::= expr_2 {('*'|'/') expr_2}*
        expr_2   ::= term {'^' term}*
        term     ::= [('+'|'-')] factor
        factor   ::= '(' expr_0 ')' | function | ident | number
        function ::= ident '(' expr_0 ')'

    Every production remembers the cursor on entry and rewinds it when it
    does not match, so alternatives can be tried in turn. Once a production
    has committed (an opening parenthesis was consumed) a mismatch raises
    ParseError and the whole parse fails.
    """

    def __init__(self, lexemes: Sequence[Lexeme], lines: Optional[List[str]] = None):
        if not lexemes or lexemes[-1].type != LEXEME_EOF:
            raise ValueError("Lexeme stream must end with an EOF lexeme")
        self.lexemes = lexemes
        self.lines = lines
        self.pos = 0
        self.depth = 0

    # --- Cursor handling ---
    def _next(self) -> Lexeme:
        lexeme = self.lexemes[self.pos]
        if lexeme.type != LEXEME_EOF:
            self.pos += 1
        return lexeme

    def _restore(self, pos: int):
        self.pos = min(pos, self.pos)

    def _error(self, message: str, lexeme: Lexeme):
        source_line = None
        if self.lines is not None and lexeme.line < len(self.lines):
            source_line = self.lines[lexeme.line]
        raise ParseError(message, lexeme.line + 1, lexeme.column + 1,
                         lexeme.text, source_line)

    def _enter(self, lexeme: Lexeme):
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            self._error(f"Expression is nested deeper than {MAX_NESTING_DEPTH} levels", lexeme)

    def _leave(self):
        self.depth -= 1

    def _expect_closing(self):
        lexeme = self._next()
        if lexeme.type != LEXEME_RPAREN:
            self._error("Expected ')'", lexeme)
        self._leave()

    @staticmethod
    def _priority(lexeme: Lexeme) -> int:
        if lexeme.type != LEXEME_OPERATOR:
            return -1
        for priority, operators in enumerate(OPERATOR_PRIORITIES):
            if lexeme.text in operators:
                return priority
        return -1

    # --- Productions ---
    def parse(self) -> Node:
        root = self._expr_of_priority(0)

        lexeme = self._next()
        if lexeme.type != LEXEME_EOF:
            self._error("Extra lexeme at the end.", lexeme)

        if tree_depth(root) > MAX_TREE_DEPTH:
            self._error(f"Expression tree is deeper than {MAX_TREE_DEPTH} levels", lexeme)

        logger.debug(f"Parsed expression tree: {root!r}")
        return root

    def _expr_of_priority(self, priority: int) -> Node:
        if priority >= len(OPERATOR_PRIORITIES):
            return self._term()

        root = self._expr_of_priority(priority + 1)
        while True:
            pos = self.pos
            lexeme = self._next()
            if self._priority(lexeme) != priority:
                self._restore(pos)
                return root

            rhs = self._expr_of_priority(priority + 1)
            root = make_binary(lexeme.text, root, rhs)

    def _term(self) -> Node:
        pos = self.pos
        lexeme = self._next()
        if lexeme.type == LEXEME_OPERATOR and lexeme.text in PREFIX_OPERATORS:
            return make_prefix_unary(lexeme.text, self._factor())

        self._restore(pos)
        return self._factor()

    def _factor(self) -> Node:
        pos = self.pos
        lexeme = self._next()
        if lexeme.type == LEXEME_LPAREN:
            self._enter(lexeme)
            root = self._expr_of_priority(0)
            self._expect_closing()
            return root

        for production in (self._function, self._ident, self._number):
            self._restore(pos)
            root = production()
            if root is not None:
                return root

        self._restore(pos)
        if lexeme.type == LEXEME_EOF:
            self._error("Unexpected end of expression", lexeme)
        self._error(f"Invalid sequence {lexeme.text}", lexeme)

    def _function(self) -> Optional[Node]:
        pos = self.pos
        name = self._next()
        paren = self._next()
        if name.type != LEXEME_IDENT or paren.type != LEXEME_LPAREN:
            self._restore(pos)
            return None

        self._enter(paren)
        arg = self._expr_of_priority(0)
        self._expect_closing()
        return make_function(name.text, arg)

    def _ident(self) -> Optional[Node]:
        pos = self.pos
        lexeme = self._next()
        if lexeme.type != LEXEME_IDENT:
            self._restore(pos)
            return None
        return make_variable(lexeme.text)

    def _number(self) -> Optional[Node]:
        pos = self.pos
        lexeme = self._next()
        if lexeme.type != LEXEME_NUMBER:
            self._restore(pos)
            return None
        return make_number(float(lexeme.text))


def parse_lexemes(lexemes: Sequence[Lexeme], lines: Optional[List[str]] = None) -> Node:
    return Parser(lexemes, lines).parse()


def parse(text: str) -> Node:
    """Parses ``text`` into an expression tree, raising LexError/ParseError."""
    lexer = Lexer(text)
    lexemes = lexer.tokenize()
    return Parser(lexemes, lexer.lines).parse()
