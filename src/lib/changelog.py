"""
Changelog section extractor

Pulls the release notes for one version out of a Markdown CHANGELOG and
reflows them for GitHub, which renders single line breaks inside a paragraph
literally.

The changelog must start with the version's level-2 header:

    ## 1.2.3
    * Fixed a bug where
      wrapped lines showed up as hard breaks.

    ## 1.2.2
    ...

Everything up to the next ``## `` header is reformatted:

- wrapped paragraph lines are joined with a single space
- fenced code blocks are copied verbatim
- list markers and nested list indentation are preserved
- link reference definitions (``[label]: url``) stay on their own lines
- blank lines separate paragraphs

Example:
    >>> changelogSection_extract("## 1.2.3\\nThis is a\\ngreat release!\\n", "1.2.3")
    'This is a great release!'
"""

import re
from typing import List, Optional

from .config_variable import ConfigError
from .log import LOG
from .scanner import Scanner

CODE_BLOCK = re.compile(r" *```")

LINK_REFERENCE_DEFINITION = re.compile(r" *\[([^\]\\]|\\[\]\\])+\]:")

LIST_ITEM = re.compile(r" *([*-]|\d+[.)]) ")

BLANK_LINE = re.compile(r"[ \t]*\r?(\n|\Z)")

NEXT_SECTION = "## "


def header_missingMessage(version: str, override_option: str = "github_release_notes") -> str:
    """User-facing message for a changelog that doesn't start with the version header"""
    return (
        "Failed to extract GitHub release notes from CHANGELOG.md.\n"
        f'Expected it to start with "## {version}".\n'
        f"Set {override_option} to explicitly declare release notes."
    )


class ChangelogExtractor:
    """
    Extracts and reflows the first section of a changelog

    One instance handles one extraction; the scanner and output buffer are
    not reusable.
    """

    def __init__(self, text: str, source_url: Optional[str] = "CHANGELOG.md") -> None:
        """
        Args:
            text: Full changelog text
            source_url: Name used in parse error messages

        Attributes:
            scanner: Cursor over text, including the indentation stack
            buffer: Output fragments
            in_paragraph: Whether the last written line is an open paragraph
        """
        self.scanner = Scanner(text, source_url=source_url)
        self.buffer: List[str] = []
        self.in_paragraph = False

    def extract(self, version: str, override_option: str = "github_release_notes") -> str:
        """
        Extract the section for version

        Args:
            version: Version string expected in the leading "## " header
            override_option: Setting named in the error message

        Returns:
            The reflowed section, stripped of leading/trailing whitespace

        Raises:
            ConfigError: If the text doesn't start with "## <version>"
            SyntaxError: If a code block is unterminated or under-indented
        """
        header = re.compile(rf"## {re.escape(str(version))}\r?(\n|\Z)")
        if not self.scanner.scan(header):
            raise ConfigError(header_missingMessage(str(version), override_option))

        while not self.scanner.is_done and not self.scanner.matches(NEXT_SECTION):
            if not self.scanner.indentation_tryConsume():
                # Under-indented line closes the innermost list item.
                self.paragraph_end()
                self.scanner.indentation_pop()
            else:
                self.line_scanAfterIndentation(after_list_item=False)

        section = "".join(self.buffer).strip()
        LOG(f"Extracted {len(section)} characters of release notes for {version}", level=3)
        return section

    def line_scanAfterIndentation(self, after_list_item: bool) -> None:
        """
        Handle the rest of a line once its indentation has been consumed

        Args:
            after_list_item: True when the cursor sits right after a list
                             marker on the same line (the marker already
                             stands in for the indentation)
        """
        scanner = self.scanner

        if scanner.matches(CODE_BLOCK):
            self.paragraph_end()
            self.codeBlock_scan(after_list_item)

        elif scanner.scan(LIST_ITEM):
            self.paragraph_end()
            marker = scanner.last_match.group(0)
            if not after_list_item:
                self.indentation_write()
            self.write(marker)
            scanner.indentation_push(scanner.indentation_level + len(marker))
            self.line_scanAfterIndentation(after_list_item=True)

        elif not self.in_paragraph and scanner.matches(LINK_REFERENCE_DEFINITION):
            if not after_list_item:
                self.indentation_write()
            self.write(scanner.line_consume().rstrip())
            self.write("\n")

        elif scanner.matches(BLANK_LINE):
            self.paragraph_end()
            scanner.line_consume()
            self.write("\n")

        else:
            line = scanner.line_consume()
            if self.in_paragraph:
                self.write(" " + line.strip())
            else:
                if not after_list_item:
                    self.indentation_write()
                self.write(line.rstrip())
            self.in_paragraph = True

    def codeBlock_scan(self, after_list_item: bool) -> None:
        """
        Copy a fenced code block verbatim, re-indented at the current level

        Raises:
            SyntaxError: If a line inside the block lacks the block's
                         indentation or the input ends before the closing fence
        """
        scanner = self.scanner
        opening = scanner.position

        while True:
            if not after_list_item and not scanner.matches(BLANK_LINE):
                self.indentation_write()
            after_list_item = False
            self.write(scanner.line_consume())
            self.write("\n")

            if scanner.is_done:
                scanner.error("Unterminated code block.", opening)
            if not scanner.indentation_tryConsume():
                scanner.error(f"Expected {scanner.indentation_level} spaces of indentation.")
            if scanner.matches(CODE_BLOCK):
                break

        self.indentation_write()
        self.write(scanner.line_consume())
        self.write("\n")

    def paragraph_end(self) -> None:
        """Terminate the open paragraph, if any"""
        if self.in_paragraph:
            self.write("\n")
        self.in_paragraph = False

    def indentation_write(self) -> None:
        self.write(" " * self.scanner.indentation_level)

    def write(self, text: str) -> None:
        self.buffer.append(text)


def changelogSection_extract(
    text: str,
    version: str,
    source_url: Optional[str] = "CHANGELOG.md",
    override_option: str = "github_release_notes",
) -> str:
    """
    Extract the reflowed release notes for version from changelog text

    Pure function of its inputs; safe to call repeatedly.

    Raises:
        ConfigError: If the changelog doesn't start with "## <version>"
        SyntaxError: On malformed code blocks
    """
    return ChangelogExtractor(text, source_url=source_url).extract(version, override_option)
