"""Article text → guessable character sequence and initial reveal mask."""

from dataclasses import dataclass

# Always shown, never guessable
PUNCTUATION: frozenset[str] = frozenset(
    "，。、；：？！…—·“”‘’（）《》〈〉【】[]{}<>-.,;:!?\"'()/\\@#$%^&*_+=|`~\n\t "
)


@dataclass(frozen=True)
class Article:
    title: str
    body: str

    @classmethod
    def from_dict(cls, data: dict) -> "Article":
        return cls(
            title=normalize_newlines(str(data["title"])),
            body=normalize_newlines(str(data["body"])),
        )

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "body": self.body}


@dataclass(frozen=True)
class TextModel:
    chars: tuple[str, ...]
    split_index: int
    title_indices: tuple[int, ...]
    initial_mask: tuple[bool, ...]


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def is_punctuation(ch: str) -> bool:
    # plus any Unicode whitespace (\u3000, \xa0, \r)
    return ch in PUNCTUATION or ch.isspace()


def _is_ascii_letter(ch: str) -> bool:
    return len(ch) == 1 and ch.isascii() and ch.isalpha()


def canonical_char(ch: str) -> str:
    """Deduplication key of a guess: ASCII letters fold to lowercase."""
    return ch.lower() if _is_ascii_letter(ch) else ch


def guess_variants(ch: str) -> frozenset[str]:
    """Characters in the text that a guess of *ch* reveals."""
    if _is_ascii_letter(ch):
        return frozenset({ch, ch.lower(), ch.upper()})
    return frozenset({ch})


def full_text(article: Article) -> str:
    return f"《{article.title}》\n\n{article.body}"


def build_model(article: Article) -> TextModel:
    """Derive the canonical character sequence of *article*.

    The sequence is ``《title》\\n\\nbody`` split into code points. Positions
    before ``split_index`` belong to the title; ``title_indices`` lists the
    title positions that must be revealed to win.
    """
    chars = tuple(full_text(article))
    split_index = len(f"《{article.title}》\n\n")
    title_indices = tuple(i for i in range(split_index) if not is_punctuation(chars[i]))
    initial_mask = tuple(is_punctuation(ch) for ch in chars)
    return TextModel(
        chars=chars,
        split_index=split_index,
        title_indices=title_indices,
        initial_mask=initial_mask,
    )
