"""Automatic programming-language detection on top of Pygments lexers.

Each candidate lexer tokenizes the sample and scores one point for every
token that is one of the language's signature keywords, much like the
keyword relevance of highlight.js. Only code-bearing tokens count: prose,
strings and comments never score. Matching is case-sensitive, so SQL is
only recognized in upper case. Words that are common in English prose are
never signatures, and a lexer that produces error tokens is considered
unable to parse the sample. Ties go to the language listed first.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import regex
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.token import Comment, Error, Keyword, Name, Operator, Punctuation, _TokenType
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES = (
    "python",
    "javascript",
    "typescript",
    "java",
    "c",
    "cpp",
    "csharp",
    "go",
    "rust",
    "ruby",
    "php",
    "bash",
    "sql",
    "html",
    "xml",
    "css",
    "json",
    "kotlin",
    "swift",
    "lua",
    "perl",
    "haskell",
    "scala",
    "dockerfile",
)

COMMON_WORDS = frozenset({
    "a", "all", "and", "as", "at", "be", "by", "can", "case", "do", "done",
    "else", "end", "except", "final", "for", "from", "if", "import", "in",
    "instance", "is", "it", "let", "list", "local", "my", "new", "not", "of",
    "on", "or", "parent", "raise", "range", "return", "sub", "the", "then",
    "this", "to", "type", "value", "virtual", "when", "where", "while",
    "window", "with", "yield",
})

SIGNATURES: Dict[str, Tuple[str, ...]] = {
    "python": ("def", "elif", "lambda", "None", "self", "print",
               "__init__", "__name__", "nonlocal", "async", "await", "len"),
    "javascript": ("function", "const", "var", "console", "undefined", "typeof",
                   "=>", "===", "!==", "require"),
    "typescript": ("interface", "readonly", "implements", "namespace", "enum",
                   "declare", "keyof"),
    "java": ("public", "private", "protected", "static", "void", "System",
             "println", "extends", "@Override"),
    "c": ("int", "void", "printf", "malloc", "sizeof", "struct", "typedef",
          "NULL", "unsigned"),
    "cpp": ("std", "cout", "endl", "template", "typename", "nullptr", "::"),
    "csharp": ("Console", "WriteLine", "public", "static", "void", "readonly",
               "namespace"),
    "go": ("func", "package", "fmt", "Println", ":=", "chan", "defer"),
    "rust": ("fn", "mut", "impl", "pub", "println", "Vec", "usize", "i32"),
    "ruby": ("def", "elsif", "puts", "nil", "attr_accessor", "require_relative"),
    "php": ("<?php", "$this", "echo", "->", "?>"),
    "bash": ("echo", "fi", "esac", "elif", "export", "sudo", "chmod"),
    "sql": ("SELECT", "FROM", "WHERE", "INSERT", "INTO", "UPDATE", "DELETE",
            "JOIN", "ORDER", "GROUP", "BY", "VALUES", "CREATE", "TABLE",
            "LIMIT", "NULL"),
    "html": ("html", "head", "body", "div", "span", "href", "src", "script",
             "DOCTYPE"),
    "xml": ("<?xml", "xmlns", "encoding", "?>"),
    "css": ("px", "rem", "!important", "rgba", "hsla", "@media"),
    "json": ("{", "}", "[", "]", ":", "true", "false", "null"),
    "kotlin": ("fun", "val", "companion", "lateinit", "?:"),
    "swift": ("func", "guard", "fileprivate", "->"),
    "lua": ("elseif", "~=", "nil", "ipairs"),
    "perl": ("=~", "chomp", "@ARGV", "$_"),
    "haskell": ("::", "<-", "newtype", "deriving", "putStrLn", "mapM_"),
    "scala": ("implicit", "sealed", "println", "val", "extends"),
    "dockerfile": ("RUN", "CMD", "COPY", "WORKDIR", "ENTRYPOINT", "EXPOSE", "ENV"),
}

# Lexers for languages such as Haskell and Ruby read plain prose as names,
# so only signature words are ever counted.
KEYWORDS: Dict[str, FrozenSet[str]] = {
    language: frozenset(words) - COMMON_WORDS
    for language, words in SIGNATURES.items()
}

CODE_TOKENS: Tuple[_TokenType, ...] = (
    Keyword,
    Name,
    Operator,
    Punctuation,
    Comment.Preproc,
)

WORD = regex.compile(r"[$@]?\w+")


@dataclass(frozen=True)
class HighlightResult:
    language: str
    relevance: int


class PygmentsDetector:

    def __init__(self, lexers: Dict[str, Lexer]):
        self._lexers = lexers

    @classmethod
    def load(cls, languages: Iterable[str] = DEFAULT_LANGUAGES) -> "PygmentsDetector":
        lexers: Dict[str, Lexer] = {}
        for language in languages:
            try:
                lexers[language] = get_lexer_by_name(language, stripnl=False)
            except ClassNotFound:
                logger.error(f'Failed to register language "{language}"')
        return cls(lexers)

    @property
    def languages(self) -> List[str]:
        return list(self._lexers)

    def get_language_name(self, language: str) -> Optional[str]:
        lexer = self._lexers.get(language)
        return lexer.name if lexer else None

    def relevance(self, language: str, sample: str) -> Optional[int]:
        """Score ``sample`` for one language, or ``None`` if it does not parse."""
        lexer = self._lexers[language]
        keywords = KEYWORDS.get(language, frozenset())

        score = 0
        for token_type, value in lexer.get_tokens(sample):
            if token_type in Error:
                return None
            if not any(token_type in kind for kind in CODE_TOKENS):
                continue

            text = value.strip()
            if text in keywords:
                score += 1
                continue
            score += sum(1 for word in WORD.findall(text) if word != text and word in keywords)
        return score

    def highlight_auto(self, sample: str) -> Optional[HighlightResult]:
        best: Optional[HighlightResult] = None
        for language in self._lexers:
            score = self.relevance(language, sample)
            if not score:
                continue
            if best is None or score > best.relevance:
                best = HighlightResult(language=language, relevance=score)
        return best
