"""Kaleidoscope language front end: tokenizer, parser, AST, scopes and the session driver."""
