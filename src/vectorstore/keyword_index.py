"""Inverted index from lower-cased keyword to entry ids."""

from collections.abc import Iterable


class KeywordIndex:
    """Keyword -> set of entry ids.

    Derived state: it can always be rebuilt from the keyword lists of
    the live entries. Empty buckets are dropped so the index holds only
    keywords that some entry still carries.
    """

    def __init__(self) -> None:
        self._buckets: dict[str, set[str]] = {}

    @staticmethod
    def _keys(keywords: Iterable[str]) -> set[str]:
        return {keyword.lower() for keyword in keywords}

    def add(self, entry_id: str, keywords: Iterable[str]) -> None:
        """Associate an entry with each of its keywords."""
        for key in self._keys(keywords):
            self._buckets.setdefault(key, set()).add(entry_id)

    def remove(self, entry_id: str, keywords: Iterable[str]) -> None:
        """Drop an entry from the buckets of the given keywords."""
        for key in self._keys(keywords):
            bucket = self._buckets.get(key)
            if bucket is None:
                continue
            bucket.discard(entry_id)
            if not bucket:
                del self._buckets[key]

    def replace(
        self,
        entry_id: str,
        old_keywords: Iterable[str],
        new_keywords: Iterable[str],
    ) -> None:
        """Move an entry from its old keyword set to its new one."""
        old = self._keys(old_keywords)
        new = self._keys(new_keywords)
        self.remove(entry_id, old - new)
        self.add(entry_id, new - old)

    def lookup(self, keyword: str) -> frozenset[str]:
        """Ids of entries carrying a keyword (case-insensitive)."""
        return frozenset(self._buckets.get(keyword.lower(), ()))

    def score(self, tokens: list[str]) -> dict[str, float]:
        """Fraction of query tokens each entry matches.

        Every token found in the index adds 1/len(tokens) to each id in
        its bucket, so an entry matching all tokens scores 1.0.
        """
        scores: dict[str, float] = {}
        if not tokens:
            return scores
        share = 1.0 / len(tokens)
        for token in tokens:
            for entry_id in self._buckets.get(token, ()):
                scores[entry_id] = scores.get(entry_id, 0.0) + share
        return scores

    def clear(self) -> None:
        """Remove every bucket."""
        self._buckets.clear()

    def keywords(self) -> list[str]:
        """All indexed keywords, sorted."""
        return sorted(self._buckets)

    def __contains__(self, keyword: object) -> bool:
        return isinstance(keyword, str) and keyword.lower() in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)
