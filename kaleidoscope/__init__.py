"""Kaleidoscope interpreter.

Basic program flow, once per top-level form:
    1. Tokenizer: pulls characters from the input and produces tokens (kaleidoscope/lang/lexical.py)
    2. Parser: recursive descent with precedence climbing produces an AST (kaleidoscope/lang/parser.py). User-defined
       binary operators are added to the session's operator table as soon as their prototype is parsed
    3. Optimization: a fixed pipeline of AST passes runs over every function (kaleidoscope/backend/passes.py)
    4. Code generation: not a native compiler, so functions are lowered to Python closures over float frames
       (kaleidoscope/backend/codegen.py), one compilation unit per form
    5. Execution: the unit is committed to the engine; top-level expressions are run, printed and dropped again
       (kaleidoscope/backend/engine.py)
"""

__version__ = "0.1.0"
