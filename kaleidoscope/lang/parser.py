"""Recursive-descent parser for the Kaleidoscope language, with precedence climbing for binary operators.

Grammar:

```
<toplevel>   ::= ";" | <definition> | <extern> | <expr>
<definition> ::= "def" <prototype> <expr>
<extern>     ::= "extern" <prototype>
<prototype>  ::= IDENT "(" IDENT* ")"
               | "unary" SYMBOL "(" IDENT ")"
               | "binary" SYMBOL NUMBER? "(" IDENT IDENT ")"   ; precedence defaults to 30, must be 1..100
<expr>       ::= <unary> (SYMBOL <unary>)*                      ; precedence-climbed
<unary>      ::= SYMBOL <unary> | <primary>
<primary>    ::= NUMBER | IDENT ("(" (<expr> ("," <expr>)*)? ")")?
               | "(" <expr> ")" | <ifexpr> | <forexpr> | <varexpr>
<ifexpr>     ::= "if" <expr> "then" <expr> "else" <expr>
<forexpr>    ::= "for" IDENT "=" <expr> "," <expr> ("," <expr>)? "in" <expr>
<varexpr>    ::= "var" IDENT ("=" <expr>)? ("," IDENT ("=" <expr>)?)* "in" <expr>
```

The operator table is consulted on every binary operator and written exactly once per binary prototype: a `binary`
operator becomes infix as soon as its prototype has been parsed, so it is already usable inside its own body.

Every parse method raises ParseError on failure and never returns a partial tree. Recovery (skipping a token) is up to
the caller.
"""

from kaleidoscope.lang.ast import (BinaryExpr, CallExpr, ForExpr, Function, IfExpr, NumberExpr, Prototype, UnaryExpr,
                                   VarExpr, VariableExpr)
from kaleidoscope.lang.error import ParseError, PrecedenceRangeError
from kaleidoscope.lang.grammar import Context, OperatorTable
from kaleidoscope.lang.lexical import TokenKind, Tokenizer


class Parser:
    """Parses top-level forms from a Tokenizer. context carries the operator table and prototype registry."""

    def __init__(self, tokenizer, context=None):
        if isinstance(tokenizer, str):
            tokenizer = Tokenizer(tokenizer)

        self.tokenizer = tokenizer
        self.context = context if context is not None else Context()
        self.current = None
        self.next_token()

    @property
    def operators(self):
        return self.context.operators

    def next_token(self):
        """Advances to (and returns) the next token."""
        self.current = self.tokenizer.next_token()
        return self.current

    def _error(self, msg, *exprs):
        return ParseError(msg, exprs, token=self.current)

    def _expect_symbol(self, char, msg):
        """Consumes the symbol char or raises ParseError(msg)."""
        if not self.current.is_symbol(char):
            raise self._error(msg)
        self.next_token()

    def _expect_keyword(self, word, msg):
        if not self.current.is_keyword(word):
            raise self._error(msg)
        self.next_token()

    def _expect_identifier(self, msg):
        """Consumes an identifier and returns its text, or raises ParseError(msg)."""
        if self.current.kind is not TokenKind.IDENTIFIER:
            raise self._error(msg)
        name = self.current.value
        self.next_token()
        return name

    def token_precedence(self):
        """Precedence of the current token as a binary operator, or -1."""
        if not self.current.is_ascii_symbol:
            return -1
        return self.operators.precedence(self.current.value)

    # expressions

    def parse_number(self):
        text = self.current.value
        try:
            value = float(text)
        except ValueError:
            raise self._error("invalid number literal '{}'", text)
        self.next_token()
        return NumberExpr(value)

    def parse_paren(self):
        """( expr )"""
        self.next_token()
        expr = self.parse_expression()
        self._expect_symbol(")", "expected ')'")
        return expr

    def parse_identifier(self):
        """A variable reference, or a call if the identifier is followed by '('."""
        name = self.current.value
        self.next_token()

        if not self.current.is_symbol("("):
            return VariableExpr(name)

        self.next_token()
        args = []
        if not self.current.is_symbol(")"):
            while True:
                args.append(self.parse_expression())
                if self.current.is_symbol(")"):
                    break
                if not self.current.is_symbol(","):
                    raise self._error("expected ')' or ',' in argument list")
                self.next_token()
        self.next_token()

        return CallExpr(name, args)

    def parse_if(self):
        self.next_token()
        cond = self.parse_expression()

        self._expect_keyword("then", "expected 'then'")
        then = self.parse_expression()

        self._expect_keyword("else", "expected 'else'")
        else_ = self.parse_expression()

        return IfExpr(cond, then, else_)

    def parse_for(self):
        self.next_token()
        var_name = self._expect_identifier("expected identifier after 'for'")

        self._expect_symbol("=", "expected '=' after 'for'")
        start = self.parse_expression()

        self._expect_symbol(",", "expected ',' after for start value")
        end = self.parse_expression()

        step = None
        if self.current.is_symbol(","):
            self.next_token()
            step = self.parse_expression()

        self._expect_keyword("in", "expected 'in' after 'for'")
        body = self.parse_expression()

        return ForExpr(var_name, start, end, step, body)

    def parse_var(self):
        self.next_token()
        bindings = []

        name = self._expect_identifier("expected identifier after 'var'")
        while True:
            init = None
            if self.current.is_symbol("="):
                self.next_token()
                init = self.parse_expression()
            bindings.append((name, init))

            if not self.current.is_symbol(","):
                break
            self.next_token()
            name = self._expect_identifier("expected identifier list after 'var'")

        self._expect_keyword("in", "expected 'in' keyword after 'var'")
        body = self.parse_expression()

        return VarExpr(bindings, body)

    def parse_primary(self):
        token = self.current
        if token.kind is TokenKind.IDENTIFIER:
            return self.parse_identifier()
        if token.kind is TokenKind.NUMBER:
            return self.parse_number()
        if token.is_symbol("("):
            return self.parse_paren()
        if token.is_keyword("if"):
            return self.parse_if()
        if token.is_keyword("for"):
            return self.parse_for()
        if token.is_keyword("var"):
            return self.parse_var()
        raise self._error("unknown token when expecting an expression")

    def parse_unary(self):
        """Prefix operators. Whether the operator exists is only checked when lowering."""
        if not self.current.is_ascii_symbol or self.current.value in "(,":
            return self.parse_primary()

        op = self.current.value
        self.next_token()
        return UnaryExpr(op, self.parse_unary())

    def parse_bin_op_rhs(self, min_precedence, lhs):
        """Folds (op unary)* pairs into lhs while the pending operator binds at least as tightly as min_precedence."""
        while True:
            precedence = self.token_precedence()
            if precedence < min_precedence:
                return lhs

            op = self.current.value
            self.next_token()
            rhs = self.parse_unary()

            # if the next operator binds tighter, it takes rhs as its lhs
            if precedence < self.token_precedence():
                rhs = self.parse_bin_op_rhs(precedence + 1, rhs)

            lhs = BinaryExpr(op, lhs, rhs)

    def parse_expression(self):
        return self.parse_bin_op_rhs(0, self.parse_unary())

    # top level

    def parse_prototype(self):
        """Parses a plain, unary or binary prototype. A binary prototype registers its operator on success."""
        token = self.current
        precedence = OperatorTable.DEFAULT_PRECEDENCE

        if token.kind is TokenKind.IDENTIFIER:
            name, kind = token.value, 0
            self.next_token()

        elif token.is_keyword("unary") or token.is_keyword("binary"):
            self.next_token()
            if not self.current.is_ascii_symbol:
                raise self._error("expected {} operator", token.value)
            name, kind = token.value + self.current.value, 1 if token.value == "unary" else 2
            self.next_token()

            if kind == 2 and self.current.kind is TokenKind.NUMBER:
                precedence = self._parse_precedence()

        else:
            raise self._error("expected function name in prototype")

        self._expect_symbol("(", "expected '(' in prototype")
        params = []
        while self.current.kind is TokenKind.IDENTIFIER:
            params.append(self.current.value)
            self.next_token()
        self._expect_symbol(")", "expected ')' in prototype")

        if kind and len(params) != kind:
            raise ParseError("invalid number of operands for operator '{}'", name, token=token)

        proto = Prototype(name, params, is_operator=kind != 0, precedence=precedence if kind == 2 else 0)
        if proto.is_binary_op:
            self.operators.define(proto.operator_name, proto.precedence, token=token)
        return proto

    def _parse_precedence(self):
        """Precedence literal of a binary prototype. Range errors are raised with the number still current."""
        text = self.current.value
        try:
            precedence = float(text)
        except ValueError:
            raise self._error("invalid number literal '{}'", text)
        if not OperatorTable.MIN_PRECEDENCE <= precedence <= OperatorTable.MAX_PRECEDENCE:
            raise PrecedenceRangeError("invalid precedence '{}': must be 1..100", text, token=self.current)
        self.next_token()
        return int(precedence)

    def parse_definition(self):
        """def prototype expr"""
        self.next_token()
        proto = self.parse_prototype()
        return Function(proto, self.parse_expression())

    def parse_extern(self):
        """extern prototype"""
        self.next_token()
        return self.parse_prototype()

    def parse_top_level_expr(self):
        """A bare expression, wrapped in the anonymous zero-argument function."""
        return Function.anonymous(self.parse_expression())

    def parse_top_level_form(self):
        """Returns a Function for 'def', a Prototype for 'extern', a bare expression node otherwise, or None for ';'
        (which is consumed) and at end of input.
        """
        token = self.current
        if token.kind is TokenKind.EOF:
            return None
        if token.is_symbol(";"):
            self.next_token()
            return None
        if token.is_keyword("def"):
            return self.parse_definition()
        if token.is_keyword("extern"):
            return self.parse_extern()
        return self.parse_expression()
