"""Parse a teacher's markdown word list into a WordList.

Expected layout:

  # Farm Animals                 <- list title
  Difficulty: beginner           <- optional metadata lines
  Category: animals
  Tags: farm, nouns

  ## Big animals                 <- subcategory for the rows below

  | Word | Pronunciation |
  |------|---------------|
  | **cow** | kow |
  | **horse** | |

Rows without a bold word (headers, separators) are ignored.
"""
from __future__ import annotations

import re
from pathlib import Path

from esl_quiz.models import WordEntry, WordList

META_KEYS = ("difficulty", "category", "language", "tags", "description")


def parse_word_list_file(path: Path) -> WordList:
    return parse_word_list(path.read_text(), default_title=path.stem)


def parse_word_list(text: str, default_title: str = "Untitled") -> WordList:
    title = default_title
    meta: dict[str, str] = {}
    words: list[WordEntry] = []
    subcategory: str | None = None

    for line in text.splitlines():
        m = re.match(r"^# (.+)", line)
        if m:
            title = m.group(1).strip()
            continue

        m = re.match(r"^## (.+)", line)
        if m:
            subcategory = m.group(1).strip()
            continue

        m = re.match(r"^(\w+):\s*(.*)$", line.strip())
        if m and m.group(1).lower() in META_KEYS:
            meta[m.group(1).lower()] = m.group(2).strip()
            continue

        if not line.startswith("|"):
            continue

        m = re.match(r"\|\s*\*\*(.+?)\*\*\s*\|(?:\s*([^|]*?)\s*\|)?", line)
        if m:
            hint = (m.group(2) or "").strip() or None
            words.append(WordEntry(
                word=m.group(1).strip(),
                pronunciation_hint=hint,
                subcategory=subcategory,
            ))

    tags = [t.strip() for t in meta.get("tags", "").split(",") if t.strip()]
    return WordList(
        id="",
        title=title,
        words=words,
        difficulty=meta.get("difficulty", ""),
        category=meta.get("category", ""),
        language=meta.get("language", "en") or "en",
        description=meta.get("description", ""),
        tags=tags,
    )
