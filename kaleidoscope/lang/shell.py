"""Handles interactive/command-line mode for the Kaleidoscope interpreter. Uses cmd as backend."""

import cmd


class Shell(cmd.Cmd):
    """Kaleidoscope interpreter shell."""
    intro = "Kaleidoscope interpreter :: Python backend\nType 'help' for more information."
    prompt = "ready> "
    secondary_prompt = "...> "  # used for line continuations
    _tmp_prompt = "ready> "     # also used for prompt swapping in line continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.sess = sess

    def default(self, line):
        """Runs arbitrary Kaleidoscope input. Forms left unfinished at the end of the line continue on the next one."""
        if self.sess.add(line):
            self.prompt = self._tmp_prompt
        else:
            self.prompt = self.secondary_prompt

    def do_help(self, arg):
        """Doesnt return docs, but rather a short intro."""
        print("Welcome to the Kaleidoscope interpreter!\n\n"
              "Every top-level expression is compiled and evaluated right away. Functions are \n"
              "defined with 'def' and host functions are declared with 'extern':\n\n"
              "    def foo(a b) a + b * 2;\n"
              "    foo(1, 2);\n"
              "    extern printd(x);\n"
              "    for i = 1, i < 4 in printd(i);\n\n"
              "Operators can be defined too, e.g. 'def binary | 5 (a b) if a then 1 else b;'.\n"
              "An empty line abandons an unfinished form; 'exit' or EOF quits.", file=self.stdout)

    def emptyline(self):
        """Do not repeat previous command on empty line; flush any unfinished form instead."""
        if self.sess.pending:
            self.sess.flush()
            self.prompt = self._tmp_prompt
        return False

    def do_EOF(self, arg):
        """Exits interpreter."""
        print(file=self.stdout)
        return self.do_exit(arg)

    def do_exit(self, arg):
        """Exits interpreter."""
        if arg:
            self.default("exit " + arg)
            return False
        return True
