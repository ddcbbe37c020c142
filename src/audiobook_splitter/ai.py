"""LLM-assisted book title reconciliation.

Picks one canonical title from a filename plus candidate titles (embedded
tags, filename heuristics) and optionally shortens long titles. The LLM is
any callable ``prompt -> str``: the ``llm`` command-line tool, or any
OpenAI-compatible endpoint (OpenAI, LiteLLM, Ollama). Results can be
memoized in a TitleCache so repeat runs make no LLM calls.
"""

from __future__ import annotations

import json
import uuid
from typing import Callable, Protocol, TypeVar

from loguru import logger
from rapidfuzz import fuzz

from .commands import run
from .errors import DisambiguationError, RetryExhausted
from .title_cache import TitleCache

log = logger.bind(stage="ai")

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_MAX_LENGTH = 40
DEFAULT_MATCH_THRESHOLD = 90


class LLM(Protocol):
    def __call__(self, prompt: str) -> str: ...


def get_client(base_url: str, api_key: str):
    """Return an OpenAI client configured for the given endpoint, or None.

    Returns None if base_url is empty (AI disabled).
    """
    if not base_url:
        return None

    from openai import OpenAI

    # OpenAI SDK expects base_url WITHOUT /v1 -- it appends that itself
    clean_url = base_url.rstrip("/")
    if clean_url.endswith("/v1"):
        clean_url = clean_url[:-3].rstrip("/")

    return OpenAI(
        base_url=clean_url,
        api_key=api_key or "not-needed",
    )


class LLMCommand:
    """Ask the ``llm`` CLI (or a compatible executable) for a completion."""

    def __init__(self, model: str, executable: str = "llm") -> None:
        self.model = model
        self.executable = executable

    def __call__(self, prompt: str) -> str:
        return run(self.executable, ["--model", self.model, prompt])


class OpenAIChat:
    """Single-turn chat completion against an OpenAI-compatible endpoint."""

    def __init__(self, client, model: str, max_tokens: int = 100) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def __call__(self, prompt: str) -> str:
        # Unique prefix defeats prefix-based semantic caching, so a retry
        # can actually get a different answer
        nonce = uuid.uuid4().hex[:8]
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": f"[{nonce}] {prompt}"}],
            max_tokens=self.max_tokens,
            temperature=0.1,
            extra_headers={"Cache-Control": "no-cache"},
        )
        return response.choices[0].message.content or ""


def retry_until_valid(
    call: Callable[[], T],
    is_valid: Callable[[T], bool],
    attempts: int,
) -> T:
    """Call ``call`` up to ``attempts`` times, returning the first valid result.

    Raises RetryExhausted carrying every result when none is valid.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")
    history: list[T] = []
    for attempt in range(1, attempts + 1):
        result = call()
        history.append(result)
        if is_valid(result):
            return result
        log.debug(f"Attempt {attempt}/{attempts} rejected: {result!r}")
    raise RetryExhausted(history)


def is_single_line(text: str) -> bool:
    """True for a non-empty title with no line breaks.

    Empty answers are rejected too, since an empty title cannot name a
    chapter folder.
    """
    return bool(text) and "\n" not in text and "\r" not in text


def distinct_candidates(candidates: list[str]) -> list[str]:
    """Drop blanks and exact duplicates, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for candidate in candidates:
        cleaned = candidate.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def needs_disambiguation(
    candidates: list[str],
    threshold: int = DEFAULT_MATCH_THRESHOLD,
) -> bool:
    """Decide if the LLM should be asked at all.

    False when there is at most one distinct candidate, or when every
    candidate fuzzy-matches the first one at or above ``threshold``.
    """
    distinct = distinct_candidates(candidates)
    if len(distinct) <= 1:
        return False

    first = distinct[0].lower()
    return any(
        fuzz.token_sort_ratio(first, other.lower()) < threshold
        for other in distinct[1:]
    )


def build_disambiguation_prompt(filename: str, candidates: list[str]) -> str:
    candidate_lines = "\n".join(f"  - {c}" for c in candidates)
    return (
        "I am trying to organize my digital audiobook collection.\n"
        "I have a file and I'm trying to figure out the title of the book it is for.\n"
        "The file may contain the whole book or it may be a single chapter.\n"
        "I also have some candidate titles.\n"
        "Please consider the filename and candidate titles and give me back what\n"
        "you think is the title of the book in question.\n\n"
        "Some considerations:\n\n"
        "- Some titles include an exhortation about the book's place in the\n"
        '  marketplace (like "over 7 million copies sold"). Remove those exhortations.\n\n'
        "Do not include ANYTHING else in your response. ONLY the title of the book.\n\n"
        f"Filename: {filename}\n"
        f"Candidates:\n{candidate_lines}"
    )


def build_shorten_prompt(title: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    return (
        f"Shorten the following book title to a concise format under {max_length} characters.\n"
        "Retain key elements like the main title, important descriptors, and\n"
        "series/book number (if provided). Use clear wording, and feel free to simplify\n"
        "or abbreviate where necessary, while keeping the meaning intact. For example,\n"
        "you can use dashes or parentheses to organize elements.\n\n"
        "Respond only with the edited title, no additional words.\n\n"
        f"The title is: '{title}'"
    )


class TitleReconciler:
    """Disambiguates and shortens book titles through an LLM.

    With a cache, each distinct input reaches the LLM once; later calls
    return the stored title.
    """

    def __init__(
        self,
        llm: LLM,
        cache: TitleCache | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self.llm = llm
        self.cache = cache
        self.max_attempts = max_attempts
        self.max_length = max_length

    def _cached(self, key: str, compute: Callable[[], str]) -> str:
        if self.cache is not None:
            hit = self.cache.get(key)
            if hit is not None:
                log.debug(f"Title cache hit: {key!r} -> {hit!r}")
                return hit

        value = compute()

        if self.cache is not None:
            self.cache.set(key, value)
        return value

    def _ask(self, prompt: str) -> str:
        return self.llm(prompt).strip()

    def disambiguate(self, filename: str, candidates: list[str]) -> str:
        """Return the canonical book title for ``filename``.

        Raises DisambiguationError with every raw answer when the LLM never
        gives a single-line title within ``max_attempts`` tries.
        """
        candidates = distinct_candidates(candidates)
        # Candidate order carries no priority, so it must not split cache entries
        key = "disambiguate:" + json.dumps([filename, sorted(candidates)])
        prompt = build_disambiguation_prompt(filename, candidates)

        def compute() -> str:
            log.info(f"Disambiguating title for {filename!r} ({len(candidates)} candidates)")
            try:
                title = retry_until_valid(
                    lambda: self._ask(prompt), is_single_line, self.max_attempts,
                )
            except RetryExhausted as exc:
                log.error(f"Title disambiguation failed, responses: {exc.history!r}")
                raise DisambiguationError(filename, list(exc.history)) from exc
            log.info(f"Resolved title: {title!r}")
            return title

        return self._cached(key, compute)

    def shorten(self, title: str) -> str:
        """Ask for a compact form of ``title``. One call, output trusted as-is."""
        key = "shorten:" + title

        def compute() -> str:
            log.info(f"Shortening title: {title!r}")
            short = self._ask(build_shorten_prompt(title, self.max_length))
            log.info(f"Shortened title: {short!r}")
            return short

        return self._cached(key, compute)
