"""Python backend for Kaleidoscope: optimization passes, closure code generation and the execution engine."""
