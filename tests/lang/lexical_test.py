import io
import unittest

from kaleidoscope.lang.lexical import Token, TokenKind, Tokenizer


def kinds_and_values(source):
    return [(token.kind, token.value) for token in Tokenizer(source).tokens()]


class TokenizerTestCase(unittest.TestCase):

    def test_keywords(self):
        for word in ["def", "extern", "if", "then", "else", "for", "in", "unary", "binary", "var"]:
            token = Tokenizer(word).next_token()
            self.assertEqual(TokenKind.KEYWORD, token.kind, word)
            self.assertEqual(word, token.value)

        should_be_identifiers = ["define", "x", "ifx", "in2", "Def", "varx"]
        for case in should_be_identifiers:
            self.assertEqual(TokenKind.IDENTIFIER, Tokenizer(case).next_token().kind, case)

    def test_numbers(self):
        cases = {"1": "1", "1.5": "1.5", ".5": ".5", "42.": "42.", "1.2.3": "1.2.3"}
        for case, expected in cases.items():
            token = Tokenizer(case).next_token()
            self.assertEqual(TokenKind.NUMBER, token.kind, case)
            self.assertEqual(expected, token.value, case)

    def test_identifier_stops_at_symbol(self):
        expected = [
            (TokenKind.IDENTIFIER, "foo"),
            (TokenKind.SYMBOL, "("),
            (TokenKind.IDENTIFIER, "a1"),
            (TokenKind.SYMBOL, ","),
            (TokenKind.NUMBER, "2"),
            (TokenKind.SYMBOL, ")"),
            (TokenKind.EOF, ""),
        ]
        self.assertEqual(expected, kinds_and_values("foo(a1, 2)"))

    def test_symbols(self):
        expected = [(TokenKind.SYMBOL, char) for char in "+-*<|!;"] + [(TokenKind.EOF, "")]
        self.assertEqual(expected, kinds_and_values("+ - * < | ! ;"))

    def test_comments(self):
        cases = {
            "# nothing here": [(TokenKind.EOF, "")],
            "1 # one\n2": [(TokenKind.NUMBER, "1"), (TokenKind.NUMBER, "2"), (TokenKind.EOF, "")],
            "# a\n# b\r\nx": [(TokenKind.IDENTIFIER, "x"), (TokenKind.EOF, "")],
        }
        for case, expected in cases.items():
            self.assertEqual(expected, kinds_and_values(case), case)

    def test_non_ascii_characters_are_symbols(self):
        cases = {
            "é": [(TokenKind.SYMBOL, "é"), (TokenKind.EOF, "")],
            "x²": [(TokenKind.IDENTIFIER, "x"), (TokenKind.SYMBOL, "²"), (TokenKind.EOF, "")],
            "aéb": [(TokenKind.IDENTIFIER, "a"), (TokenKind.SYMBOL, "é"), (TokenKind.IDENTIFIER, "b"),
                    (TokenKind.EOF, "")],
            "1²": [(TokenKind.NUMBER, "1"), (TokenKind.SYMBOL, "²"), (TokenKind.EOF, "")],
            "٣": [(TokenKind.SYMBOL, "٣"), (TokenKind.EOF, "")],
        }
        for case, expected in cases.items():
            self.assertEqual(expected, kinds_and_values(case), case)

    def test_eof_repeats(self):
        tokenizer = Tokenizer("x")
        tokenizer.next_token()
        for __ in range(3):
            self.assertEqual(TokenKind.EOF, tokenizer.next_token().kind)

    def test_positions(self):
        tokens = list(Tokenizer("def f(x)\n  x + 1").tokens())
        positions = [(token.value, token.line, token.col, token.pos) for token in tokens[:-1]]
        expected = [
            ("def", 1, 1, 0),
            ("f", 1, 5, 4),
            ("(", 1, 6, 5),
            ("x", 1, 7, 6),
            (")", 1, 8, 7),
            ("x", 2, 3, 11),
            ("+", 2, 5, 13),
            ("1", 2, 7, 15),
        ]
        self.assertEqual(expected, positions)
        self.assertEqual(16, tokens[-1].pos)

    def test_stream_source(self):
        stream = io.StringIO("extern sin(x);")
        values = [token.value for token in Tokenizer(stream).tokens()]
        self.assertEqual(["extern", "sin", "(", "x", ")", ";", ""], values)

    def test_token_helpers(self):
        self.assertTrue(Token(TokenKind.SYMBOL, "(").is_symbol("("))
        self.assertFalse(Token(TokenKind.SYMBOL, "(").is_symbol(")"))
        self.assertTrue(Token(TokenKind.KEYWORD, "def").is_keyword("def"))
        self.assertFalse(Token(TokenKind.IDENTIFIER, "def").is_keyword("def"))
        self.assertTrue(Token(TokenKind.SYMBOL, "|").is_ascii_symbol)
        self.assertFalse(Token(TokenKind.SYMBOL, "Î»").is_ascii_symbol)
        self.assertEqual("end of input", str(Token(TokenKind.EOF, "")))


if __name__ == '__main__':
    unittest.main()
