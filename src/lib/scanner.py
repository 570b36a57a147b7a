"""
Cursor-based text scanner with indentation tracking

The scanner walks an immutable source string. Lookahead operations never move
the cursor; only scan(), expect(), line_consume() and a successful
indentation_tryConsume() advance it.

Nested Markdown blocks (list items) are tracked with an explicit stack of
required indentation levels. Levels are absolute column counts: a list item
whose content starts at column 4 pushes 4, and every continuation line must
then start with 4 columns of whitespace. A tab counts as 4 columns.

Example:
    >>> scanner = Scanner("* one\\n  two\\n")
    >>> scanner.scan(r"\\* ")
    True
    >>> scanner.indentation_push(2)
    >>> scanner.line_consume()
    'one'
    >>> scanner.indentation_tryConsume()
    True
    >>> scanner.line_consume()
    'two'
    >>> scanner.is_done
    True
"""

import re
from typing import List, Optional, Pattern, Union

TAB_WIDTH = 4

PatternLike = Union[str, Pattern[str]]


def pattern_compile(pattern: PatternLike) -> Pattern[str]:
    """Compile string patterns; pass compiled patterns through"""
    if isinstance(pattern, str):
        return re.compile(pattern)
    return pattern


class Scanner:
    """
    Stateful cursor over a string with a stack of indentation levels
    """

    def __init__(self, source: str, source_url: Optional[str] = None) -> None:
        """
        Args:
            source: Text to scan
            source_url: Name used in error messages (e.g., "CHANGELOG.md")

        Attributes:
            position: Current offset into source
            last_match: Match object from the most recent successful scan()
        """
        self.source = source
        self.source_url = source_url
        self.position = 0
        self.last_match: Optional[re.Match] = None
        self._indentation_levels: List[int] = []

    # -- cursor primitives ---------------------------------------------------

    @property
    def is_done(self) -> bool:
        return self.position >= len(self.source)

    def peek(self, offset: int = 0) -> Optional[str]:
        """Character at position + offset, or None past the end"""
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return None
        return self.source[index]

    def matches(self, pattern: PatternLike) -> bool:
        """Whether pattern matches at the cursor, without consuming"""
        return pattern_compile(pattern).match(self.source, self.position) is not None

    def scan(self, pattern: PatternLike) -> bool:
        """
        Consume pattern if it matches at the cursor

        Returns:
            True and advances past the match, or False leaving the cursor as is
        """
        match = pattern_compile(pattern).match(self.source, self.position)
        if match is None:
            return False
        self.last_match = match
        self.position = match.end()
        return True

    def expect(self, pattern: PatternLike, message: Optional[str] = None) -> None:
        """
        Consume pattern or fail

        Raises:
            SyntaxError: If pattern does not match at the cursor
        """
        if not self.scan(pattern):
            if message is None:
                expected = pattern if isinstance(pattern, str) else pattern.pattern
                message = f"Expected /{expected}/."
            self.error(message)

    def line_consume(self) -> str:
        """
        Consume the rest of the current line and its terminator

        Returns:
            The line's text without "\\n" (or "\\r\\n")
        """
        end = self.source.find("\n", self.position)
        if end == -1:
            line = self.source[self.position:]
            self.position = len(self.source)
        else:
            line = self.source[self.position:end]
            self.position = end + 1
        if line.endswith("\r"):
            line = line[:-1]
        return line

    # -- indentation ---------------------------------------------------------

    @property
    def indentation_level(self) -> int:
        """Required indentation of the innermost open block (0 at top level)"""
        return self._indentation_levels[-1] if self._indentation_levels else 0

    def indentation_push(self, level: int) -> None:
        self._indentation_levels.append(level)

    def indentation_pop(self) -> int:
        if not self._indentation_levels:
            self.error("No open block to close.")
        return self._indentation_levels.pop()

    def indentation_measure(self) -> Optional[int]:
        """
        Number of characters that satisfy the current indentation

        Pure lookahead. Whitespace-only lines always satisfy the requirement;
        in that case the whole whitespace run is reported.

        Returns:
            Character count to consume, or None if the line is under-indented
        """
        level = self.indentation_level
        columns = 0
        index = self.position
        while columns < level:
            char = self.source[index] if index < len(self.source) else None
            if char == " ":
                columns += 1
            elif char == "\t":
                columns += TAB_WIDTH
            elif char == "\n" or (char == "\r" and self.source.startswith("\r\n", index)):
                return index - self.position
            else:
                return None
            index += 1
        return index - self.position

    def indentation_tryConsume(self) -> bool:
        """
        Consume the current indentation if the line has it

        Returns:
            True if consumed (or the line is blank), False with nothing
            consumed if the line is under-indented
        """
        width = self.indentation_measure()
        if width is None:
            return False
        self.position += width
        return True

    # -- error reporting -----------------------------------------------------

    def location(self, position: Optional[int] = None) -> tuple:
        """1-based (line, column) of position (defaults to the cursor)"""
        if position is None:
            position = self.position
        line = self.source.count("\n", 0, position) + 1
        column = position - (self.source.rfind("\n", 0, position) + 1) + 1
        return line, column

    def error(self, message: str, position: Optional[int] = None) -> None:
        """
        Report scanner error with source context

        Raises:
            SyntaxError: Always, with line/column and a caret under the
                         offending character

        Example output:
            SyntaxError:
            Expected 2 spaces of indentation.
            CHANGELOG.md line 7, column 1
            Context: ...  a { b: c;...
                               ^
        """
        if position is None:
            position = self.position
        line, column = self.location(position)
        context_start = max(0, position - 40)
        context_end = min(len(self.source), position + 40)
        # Flatten line breaks so the caret stays under the right character.
        context = self.source[context_start:context_end].replace("\r", " ").replace("\n", " ")
        where = f"{self.source_url} line" if self.source_url else "Line"

        error = SyntaxError(
            f"\n{message}\n"
            f"{where} {line}, column {column}\n"
            f"Context: ...{context}...\n"
            f"         {' ' * (position - context_start + 3)}^"
        )
        error.filename = self.source_url
        error.lineno = line
        error.offset = column
        raise error
