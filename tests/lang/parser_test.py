import unittest

from kaleidoscope.lang.ast import (BinaryExpr, CallExpr, ForExpr, Function, IfExpr, NumberExpr, Prototype, UnaryExpr,
                                   VarExpr, VariableExpr)
from kaleidoscope.lang.error import ParseError, PrecedenceRangeError
from kaleidoscope.lang.grammar import Context
from kaleidoscope.lang.lexical import TokenKind
from kaleidoscope.lang.parser import Parser


def parse(source, context=None):
    return Parser(source, context).parse_expression()


class ExpressionTestCase(unittest.TestCase):

    def test_precedence(self):
        cases = {
            "1+2*3": "(+ 1 (* 2 3))",
            "2*3+1": "(+ (* 2 3) 1)",
            "1-2-3": "(- (- 1 2) 3)",
            "1+2-3": "(- (+ 1 2) 3)",
            "a < b + c * d": "(< a (+ b (* c d)))",
            "a * b < c": "(< (* a b) c)",
            "x = y = 1": "(= (= x y) 1)",
            "x = 1 + 2": "(= x (+ 1 2))",
        }
        for case, expected in cases.items():
            self.assertEqual(expected, str(parse(case)), case)

    def test_parentheses(self):
        cases = {
            "(1+2)*3": "(* (+ 1 2) 3)",
            "1-(2-3)": "(- 1 (- 2 3))",
            "((4))": "4",
            "2*(3+(4<5))": "(* 2 (+ 3 (< 4 5)))",
        }
        for case, expected in cases.items():
            self.assertEqual(expected, str(parse(case)), case)

    def test_parentheses_override_any_table(self):
        context = Context()
        context.operators.define("+", 90)
        self.assertEqual("(* 1 (+ 2 3))", str(parse("1*2+3", context)))
        self.assertEqual("(+ (* 1 2) 3)", str(parse("(1*2)+3", context)))

    def test_primaries(self):
        cases = {
            "42": NumberExpr(42.0),
            "x": VariableExpr("x"),
            "foo()": CallExpr("foo", []),
            "foo(1, x)": CallExpr("foo", [NumberExpr(1.0), VariableExpr("x")]),
            "if x then 1 else 2": IfExpr(VariableExpr("x"), NumberExpr(1.0), NumberExpr(2.0)),
            "for i = 1, 10 in i": ForExpr("i", NumberExpr(1.0), NumberExpr(10.0), None, VariableExpr("i")),
            "for i = 1, 10, 2 in i": ForExpr("i", NumberExpr(1.0), NumberExpr(10.0), NumberExpr(2.0),
                                             VariableExpr("i")),
            "var a = 1, b in a": VarExpr([("a", NumberExpr(1.0)), ("b", None)], VariableExpr("a")),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, parse(case), case)

    def test_unary(self):
        cases = {
            "!x": UnaryExpr("!", VariableExpr("x")),
            "-!x": UnaryExpr("-", UnaryExpr("!", VariableExpr("x"))),
            "!x + 1": BinaryExpr("+", UnaryExpr("!", VariableExpr("x")), NumberExpr(1.0)),
            "2 * -x": BinaryExpr("*", NumberExpr(2.0), UnaryExpr("-", VariableExpr("x"))),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, parse(case), case)

    def test_stops_at_unknown_operator(self):
        parser = Parser("1 + 2 | 3")
        self.assertEqual("(+ 1 2)", str(parser.parse_expression()))
        self.assertTrue(parser.current.is_symbol("|"))

    def test_errors(self):
        cases = {
            ")": "unknown token when expecting an expression",
            "then": "unknown token when expecting an expression",
            "(1 + 2": "expected ')'",
            "foo(1 2)": "expected ')' or ',' in argument list",
            "if x 1 else 2": "expected 'then'",
            "if x then 1 2": "expected 'else'",
            "for 1 = 1, 2 in 3": "expected identifier after 'for'",
            "for i 1, 2 in 3": "expected '=' after 'for'",
            "for i = 1 2 in 3": "expected ',' after for start value",
            "for i = 1, 2 3": "expected 'in' after 'for'",
            "var in 1": "expected identifier after 'var'",
            "var a, in 1": "expected identifier list after 'var'",
            "var a 1": "expected 'in' keyword after 'var'",
            "1.2.3": "invalid number literal '1.2.3'",
        }
        for case, expected in cases.items():
            with self.assertRaises(ParseError, msg=case) as context:
                parse(case)
            self.assertEqual(expected, str(context.exception), case)

    def test_error_carries_token(self):
        with self.assertRaises(ParseError) as context:
            parse("(1 + 2")
        self.assertEqual(TokenKind.EOF, context.exception.token.kind)
        self.assertEqual((1, 6), context.exception.location)


class PrototypeTestCase(unittest.TestCase):

    def parse_prototype(self, source, context=None):
        return Parser(source, context).parse_prototype()

    def test_plain(self):
        cases = {
            "foo()": Prototype("foo", []),
            "foo(a b c)": Prototype("foo", ["a", "b", "c"]),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.parse_prototype(case), case)

    def test_operators(self):
        context = Context()
        unary = self.parse_prototype("unary ! (v)", context)
        self.assertEqual(Prototype("unary!", ["v"], is_operator=True), unary)
        self.assertTrue(unary.is_unary_op)
        self.assertEqual("!", unary.operator_name)
        self.assertNotIn("!", context.operators)

        binary = self.parse_prototype("binary | 5 (a b)", context)
        self.assertEqual(Prototype("binary|", ["a", "b"], is_operator=True, precedence=5), binary)
        self.assertTrue(binary.is_binary_op)
        self.assertEqual(5, context.operators.precedence("|"))

        default = self.parse_prototype("binary & (a b)", context)
        self.assertEqual(30, default.precedence)
        self.assertEqual(30, context.operators.precedence("&"))

    def test_errors(self):
        cases = {
            "1(a)": "expected function name in prototype",
            "foo": "expected '(' in prototype",
            "foo(a, b)": "expected ')' in prototype",
            "unary x (v)": "expected unary operator",
            "binary 1 (a b)": "expected binary operator",
            "unary ! (a b)": "invalid number of operands for operator 'unary!'",
            "binary | (a)": "invalid number of operands for operator 'binary|'",
        }
        for case, expected in cases.items():
            with self.assertRaises(ParseError, msg=case) as context:
                self.parse_prototype(case)
            self.assertEqual(expected, str(context.exception), case)

    def test_precedence_range(self):
        should_raise = ["binary | 0 (a b)", "binary | 101 (a b)", "binary | 1000 (a b)"]
        for case in should_raise:
            context = Context()
            self.assertRaises(PrecedenceRangeError, self.parse_prototype, case, context)
            self.assertNotIn("|", context.operators)

        should_pass = ["binary | 1 (a b)", "binary | 100 (a b)"]
        for case in should_pass:
            context = Context()
            self.parse_prototype(case, context)
            self.assertIn("|", context.operators)

    def test_precedence_error_leaves_number_current(self):
        parser = Parser("binary | 1000 (a b)")
        with self.assertRaises(PrecedenceRangeError) as context:
            parser.parse_prototype()
        self.assertEqual("invalid precedence '1000': must be 1..100", str(context.exception))
        self.assertEqual("1000", context.exception.token.value)
        self.assertEqual(TokenKind.NUMBER, parser.current.kind)
        self.assertEqual("1000", parser.current.value)

    def test_failed_prototype_does_not_register(self):
        context = Context()
        self.assertRaises(ParseError, self.parse_prototype, "binary | 5 (a)", context)
        self.assertNotIn("|", context.operators)


class TopLevelTestCase(unittest.TestCase):

    def test_forms(self):
        parser = Parser("def foo(a b) a+b*2; extern sin(x); ; foo(1, 2)")
        forms = []
        while parser.current.kind is not TokenKind.EOF:
            form = parser.parse_top_level_form()
            if form is not None:
                forms.append(form)
        self.assertEqual(3, len(forms))

        definition, extern, expr = forms
        self.assertIsInstance(definition, Function)
        self.assertEqual("(def (foo a b) (+ a (* b 2)))", str(definition))
        self.assertEqual(Prototype("sin", ["x"]), extern)
        self.assertEqual(CallExpr("foo", [NumberExpr(1.0), NumberExpr(2.0)]), expr)

    def test_semicolon_and_eof(self):
        parser = Parser(";")
        self.assertIsNone(parser.parse_top_level_form())
        self.assertEqual(TokenKind.EOF, parser.current.kind)
        self.assertIsNone(parser.parse_top_level_form())

    def test_anonymous_function(self):
        function = Parser("1 + 2").parse_top_level_expr()
        self.assertEqual(Function.ANONYMOUS, function.name)
        self.assertEqual([], function.proto.params)

    def test_user_binary_operator(self):
        context = Context()

        # before the definition: '1' is a complete form and '|' starts the next one
        parser = Parser("1 | 0", context)
        self.assertEqual(NumberExpr(1.0), parser.parse_top_level_form())
        self.assertEqual(UnaryExpr("|", NumberExpr(0.0)), parser.parse_top_level_form())

        Parser("def binary | 5 (a b) if a then 1 else if b then 1 else 0;", context).parse_top_level_form()
        self.assertEqual(5, context.operators.precedence("|"))

        self.assertEqual(BinaryExpr("|", NumberExpr(1.0), NumberExpr(0.0)), Parser("1 | 0", context).parse_expression())
        self.assertEqual("(| (< a b) (< c d))", str(Parser("a < b | c < d", context).parse_expression()))

    def test_operator_usable_in_own_body(self):
        context = Context()
        definition = Parser("def binary ~ 15 (a b) a ~ b", context).parse_definition()
        self.assertEqual(BinaryExpr("~", VariableExpr("a"), VariableExpr("b")), definition.body)

    def test_low_precedence_operator(self):
        context = Context()
        Parser("def binary : 1 (x y) y", context).parse_top_level_form()
        self.assertEqual("(: (+ a b) (* c d))", str(Parser("a + b : c * d", context).parse_expression()))


if __name__ == '__main__':
    unittest.main()
