"""
Recursive Descent Parser for R expressions

Structure:
- Lexer: Token stream from source (newlines included)
- Parser: Recursive descent with precedence climbing for operators
- CST: lark Tree/Token, lowered to expression nodes by ast_transforms.ToExpr

Newlines are significant at top level and inside braces, where they end a
statement, and ignored inside parentheses and brackets. A newline never ends
an expression that is still waiting for an operand.
"""

from typing import List, Optional
from lark import Tree, Token

from .errors import ParseError
from .token_types import (
    BINARY_TOKENS,
    NONASSOC,
    PREC_LEFT_ASSIGN,
    PREC_LOWEST,
    PREFIX_TOKENS,
    RIGHT,
    TT,
    Tok,
)

# ============================================================================
# Parser
# ============================================================================

LITERAL_TOKENS = (
    TT.NUM_CONST,
    TT.INT_CONST,
    TT.STR_CONST,
    TT.NULL_CONST,
    TT.TRUE,
    TT.FALSE,
    TT.NA_CONST,
)

TOKEN_DESCRIPTIONS = {
    TT.NUM_CONST: 'numeric constant',
    TT.INT_CONST: 'numeric constant',
    TT.STR_CONST: 'string constant',
    TT.SYMBOL: 'symbol',
    TT.NEWLINE: 'end of line',
    TT.EOF: 'end of input',
    TT.SPECIAL: 'SPECIAL',
}


def leaf(tok: Tok, type_name: Optional[str] = None) -> Token:
    """Convert a lexer token into a lark Token carrying the same position."""
    return Token(
        type_name or tok.type.name,
        tok.value,
        start_pos=tok.pos,
        line=tok.line,
        column=tok.column,
        end_pos=tok.end,
    )


class Parser:
    """
    Recursive descent parser for R.

    Expression precedence (lowest to highest):
    1. ?
    2. = (statement level only)
    3. <- <<- :=
    4. -> ->>
    5. ~
    6. | ||
    7. & &&
    8. ! (prefix)
    9. comparisons (non-associative)
    10. + -
    11. * /
    12. %any% |>
    13. :
    14. unary + -
    15. ^ (right-associative)
    16. postfix: $ @ ( [ [[
    17. :: :::

    if/for/while/repeat/function bodies extend as far right as possible.
    """

    def __init__(self, tokens: List[Tok]):
        self.tokens = tokens
        self.pos = 0
        # innermost bracket kind: LPAR, LSQB or LBRACE
        self.context: List[TT] = []

    # ========================================================================
    # Token Stream
    # ========================================================================

    def ignoring_newlines(self) -> bool:
        return bool(self.context) and self.context[-1] is not TT.LBRACE

    def _index(self, offset: int = 0) -> int:
        idx = self.pos
        skip = self.ignoring_newlines()
        last = len(self.tokens) - 1

        while True:
            if idx >= last:
                return last
            if skip and self.tokens[idx].type is TT.NEWLINE:
                idx += 1
                continue
            if offset == 0:
                return idx
            offset -= 1
            idx += 1

    @property
    def current(self) -> Tok:
        return self.tokens[self._index()]

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token"""
        return self.tokens[self._index(offset)]

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        idx = self._index()
        tok = self.tokens[idx]
        if tok.type is not TT.EOF:
            self.pos = idx + 1
        else:
            self.pos = idx
        return tok

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT) -> Tok:
        """Consume token of expected type or raise error"""
        if not self.check(token_type):
            raise self.unexpected(self.current)
        return self.advance()

    def skip_newlines(self):
        while self.tokens[self.pos].type is TT.NEWLINE:
            self.pos += 1

    def skip_separators(self):
        while self.tokens[self.pos].type in (TT.NEWLINE, TT.SEMI):
            self.pos += 1

    def unexpected(self, tok: Tok) -> ParseError:
        what = TOKEN_DESCRIPTIONS.get(tok.type) or f"'{tok.value}'"
        return ParseError(
            f"unexpected {what}", tok.line, tok.column, incomplete=tok.type is TT.EOF
        )

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse_program(self) -> Tree:
        stmts = []

        while True:
            self.skip_separators()
            if self.check(TT.EOF):
                break

            stmts.append(self.parse_expr())

            if self.check(TT.NEWLINE, TT.SEMI):
                continue
            if self.check(TT.EOF):
                break
            raise self.unexpected(self.current)

        return Tree('program', stmts)

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expr(self, min_prec: int = PREC_LOWEST) -> Tree:
        left = self.parse_unary()
        after_nonassoc = False

        while True:
            tok = self.current
            info = BINARY_TOKENS.get(tok.type)
            if info is None:
                break

            prec, assoc = info
            if prec < min_prec:
                break

            # a == b == c
            if assoc == NONASSOC and after_nonassoc:
                raise self.unexpected(tok)

            self.advance()
            self.skip_newlines()
            right = self.parse_expr(prec if assoc == RIGHT else prec + 1)

            label = 'pipe' if tok.type is TT.PIPE else 'binop'
            left = Tree(label, [left, leaf(tok), right])
            after_nonassoc = assoc == NONASSOC

        return left

    def parse_unary(self):
        tok = self.current
        prec = PREFIX_TOKENS.get(tok.type)

        if prec is None:
            return self.parse_postfix(self.parse_primary())

        self.advance()
        self.skip_newlines()
        operand = self.parse_expr(prec + 1)
        return Tree('unop', [leaf(tok), operand])

    def parse_postfix(self, expr):
        while True:
            tok = self.current

            if tok.type is TT.LPAR:
                args = self.parse_args(TT.LPAR)
                # f() has no arguments, x[] has one empty one
                if len(args) == 1 and not args[0].children:
                    args = []
                expr = Tree('call', [expr, Tree('args', args)])

            elif tok.type is TT.LSQB:
                expr = Tree('index', [expr, Tree('args', self.parse_args(TT.LSQB))])

            elif tok.type is TT.LBB:
                expr = Tree('dindex', [expr, Tree('args', self.parse_args(TT.LBB))])

            elif tok.type in (TT.DOLLAR, TT.AT):
                self.advance()
                self.skip_newlines()
                rhs = self.current
                if rhs.type not in (TT.SYMBOL, TT.STR_CONST):
                    raise self.unexpected(rhs)
                self.advance()
                expr = Tree('dollar', [expr, leaf(tok), leaf(rhs)])

            else:
                return expr

    def parse_args(self, opener: TT) -> List[Tree]:
        self.advance()
        self.context.append(TT.LPAR if opener is TT.LPAR else TT.LSQB)
        closer = TT.RPAR if opener is TT.LPAR else TT.RSQB

        args = []
        while True:
            args.append(self.parse_arg(closer))
            if not self.match(TT.COMMA):
                break

        self.expect(closer)
        if opener is TT.LBB:
            self.expect(TT.RSQB)

        self.context.pop()
        return args

    def parse_arg(self, closer: TT) -> Tree:
        tok = self.current

        if tok.type in (TT.COMMA, closer):
            return Tree('arg', [])

        if tok.type in (TT.SYMBOL, TT.STR_CONST, TT.NULL_CONST) and self.peek(1).type is TT.EQ_ASSIGN:
            self.advance()
            self.advance()
            tag = leaf(tok, 'TAG')

            if self.check(TT.COMMA, closer):
                return Tree('arg', [tag])
            return Tree('arg', [tag, self.parse_expr(PREC_LEFT_ASSIGN)])

        return Tree('arg', [self.parse_expr(PREC_LEFT_ASSIGN)])

    # ========================================================================
    # Primaries
    # ========================================================================

    def parse_primary(self):
        tok = self.current

        if tok.type in (TT.SYMBOL, TT.STR_CONST) and self.peek(1).type in (TT.NS_GET, TT.NS_GET_INT):
            return self.parse_namespaced()

        if tok.type in LITERAL_TOKENS or tok.type is TT.SYMBOL:
            self.advance()
            return leaf(tok)

        if tok.type is TT.LPAR:
            self.advance()
            self.context.append(TT.LPAR)
            inner = self.parse_expr()
            self.expect(TT.RPAR)
            self.context.pop()
            return Tree('paren', [inner])

        if tok.type is TT.LBRACE:
            return self.parse_block()

        if tok.type in (TT.FUNCTION, TT.LAMBDA):
            return self.parse_function()

        if tok.type is TT.IF:
            return self.parse_if()

        if tok.type is TT.FOR:
            return self.parse_for()

        if tok.type is TT.WHILE:
            return self.parse_while()

        if tok.type is TT.REPEAT:
            self.advance()
            self.skip_newlines()
            return Tree('repeatexpr', [self.parse_expr()])

        if tok.type is TT.BREAK:
            self.advance()
            return Tree('breakexpr', [])

        if tok.type is TT.NEXT:
            self.advance()
            return Tree('nextexpr', [])

        raise self.unexpected(tok)

    def parse_namespaced(self) -> Tree:
        lhs = self.advance()
        op = self.advance()
        rhs = self.current

        if rhs.type not in (TT.SYMBOL, TT.STR_CONST):
            raise self.unexpected(rhs)

        self.advance()
        return Tree('ns', [leaf(lhs), leaf(op), leaf(rhs)])

    def parse_block(self) -> Tree:
        self.advance()
        self.context.append(TT.LBRACE)
        stmts = []

        while True:
            self.skip_separators()
            if self.check(TT.RBRACE):
                break

            stmts.append(self.parse_expr())

            if self.check(TT.NEWLINE, TT.SEMI, TT.RBRACE):
                continue
            raise self.unexpected(self.current)

        self.advance()
        self.context.pop()
        return Tree('block', stmts)

    def parse_function(self) -> Tree:
        kw = self.advance()
        label = 'lambdadef' if kw.type is TT.LAMBDA else 'fndef'

        self.expect(TT.LPAR)
        self.context.append(TT.LPAR)

        formals = []
        seen = set()

        if not self.check(TT.RPAR):
            while True:
                name_tok = self.current
                if name_tok.type is not TT.SYMBOL:
                    raise self.unexpected(name_tok)
                self.advance()

                if name_tok.value in seen:
                    raise ParseError(
                        f"repeated formal argument '{name_tok.value}'",
                        name_tok.line,
                        name_tok.column,
                    )
                seen.add(name_tok.value)

                children = [leaf(name_tok, 'FORMAL')]
                if self.match(TT.EQ_ASSIGN):
                    children.append(self.parse_expr(PREC_LEFT_ASSIGN))
                formals.append(Tree('formal', children))

                if not self.match(TT.COMMA):
                    break

        self.expect(TT.RPAR)
        self.context.pop()
        self.skip_newlines()

        body = self.parse_expr()
        return Tree(label, [Tree('formals', formals), body])

    def parse_condition(self):
        """Parse `( expr )` after if/while."""
        self.expect(TT.LPAR)
        self.context.append(TT.LPAR)
        cond = self.parse_expr()
        self.expect(TT.RPAR)
        self.context.pop()
        self.skip_newlines()
        return cond

    def parse_if(self) -> Tree:
        self.advance()
        cond = self.parse_condition()
        yes = self.parse_expr()
        children = [cond, yes]

        if self.check(TT.ELSE) or self.else_on_next_line():
            self.skip_newlines()
            self.advance()
            self.skip_newlines()
            children.append(self.parse_expr())

        return Tree('ifexpr', children)

    def else_on_next_line(self) -> bool:
        """Inside braces an `else` may start the line after the if branch."""
        if not self.context or self.context[-1] is not TT.LBRACE:
            return False

        idx = self.pos
        while self.tokens[idx].type is TT.NEWLINE:
            idx += 1
        return self.tokens[idx].type is TT.ELSE

    def parse_for(self) -> Tree:
        self.advance()
        self.expect(TT.LPAR)
        self.context.append(TT.LPAR)

        var = self.current
        if var.type is not TT.SYMBOL:
            raise self.unexpected(var)
        self.advance()

        self.expect(TT.IN)
        seq = self.parse_expr()
        self.expect(TT.RPAR)
        self.context.pop()
        self.skip_newlines()

        body = self.parse_expr()
        return Tree('forexpr', [leaf(var), seq, body])

    def parse_while(self) -> Tree:
        self.advance()
        cond = self.parse_condition()
        body = self.parse_expr()
        return Tree('whileexpr', [cond, body])


# ============================================================================
# Public API
# ============================================================================

def parse_source(source: str) -> Tree:
    """
    Parse R source code to a concrete syntax tree.

    Returns a lark Tree rooted at 'program', one child per top-level
    expression. Raises ParseError (or LexError) with the offending position.
    """
    from .lexer_rd import tokenize

    tokens = tokenize(source)
    parser = Parser(tokens)
    return parser.parse_program()
