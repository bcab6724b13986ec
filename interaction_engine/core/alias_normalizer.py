"""
Drug Interaction Engine - Brand Alias Normalizer
Maps regional/brand names to generic names before identifier resolution.
"""
import json
import logging
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Any, Union

from interaction_engine.core.fuzzy_ranker import rank
from interaction_engine.core.models import AliasLookup, AliasStatus

logger = logging.getLogger(__name__)


# Non-US brand names -> generic (None = known brand without a safe generic substitute)
DEFAULT_BRAND_ALIASES: Dict[str, Optional[str]] = {
    "arkamin": "clonidine",
    "metpure": "metoprolol",
    "probowel": None,
    "dytor": "torsemide",
    "cilacar": "cilnidipine",
    "cilicar": "cilnidipine",
    "kbind": "calcium polystyrene sulfonate",
    "oxra": "dapagliflozin",
    "zolfresh": "zolpidem",
    "febutaz": "febuxostat",
    "montair fx": "montelukast fexofenadine",
}

PathLike = Union[str, Path]


def _normalize_term(term: Any) -> str:
    return str(term or "").strip().lower()


def _parse_alias_mapping(data: Dict[str, Any]) -> Dict[str, Optional[str]]:
    aliases = {}
    for brand, generic in data.items():
        key = _normalize_term(brand)
        if not key:
            continue
        value = _normalize_term(generic) if generic is not None else ""
        aliases[key] = value or None
    return aliases


class BrandAliasTable:
    """
    Brand -> generic alias table backed by a JSON file.

    The file is checked at most once per reload interval and re-read only when
    its modification time moved forward. Until a readable file is found the
    built-in defaults are served.
    """

    def __init__(
        self,
        path: Optional[PathLike] = None,
        reload_interval: float = 300.0,
        defaults: Optional[Dict[str, Optional[str]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = Path(path) if path else None
        self.reload_interval = reload_interval
        self.clock = clock
        self._aliases: Dict[str, Optional[str]] = _parse_alias_mapping(
            DEFAULT_BRAND_ALIASES if defaults is None else defaults
        )
        self._loaded_mtime: Optional[float] = None
        self._last_check: Optional[float] = None
        self.load_count = 0

    # ------------------------------------------------------------------ loading

    def maybe_reload(self) -> bool:
        """Reload from disk if the interval elapsed and the file changed"""
        now = self.clock()
        if self._last_check is not None and now - self._last_check < self.reload_interval:
            return False
        self._last_check = now
        return self._load_if_changed()

    def force_reload(self) -> bool:
        self._last_check = None
        self._loaded_mtime = None
        return self.maybe_reload()

    def _load_if_changed(self) -> bool:
        if self.path is None:
            return False
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            logger.debug(f"Brand alias file not found: {self.path}")
            return False
        except OSError as e:
            logger.warning(f"Cannot stat brand alias file {self.path}: {e}")
            return False

        if self._loaded_mtime is not None and mtime <= self._loaded_mtime:
            return False

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load brand aliases from {self.path}: {e}")
            return False

        if not isinstance(data, dict):
            logger.warning(f"Brand alias file {self.path} must contain a JSON object")
            return False

        self._aliases = _parse_alias_mapping(data)
        self._loaded_mtime = mtime
        self.load_count += 1
        logger.info(f"Brand aliases loaded: {len(self._aliases)} entries")
        return True

    # ------------------------------------------------------------------ lookup

    def normalize(self, name: str) -> AliasLookup:
        """
        Candidate generic names for a raw drug name.

        Combination brands (a generic value with several space-separated
        tokens) also yield each token as a separate candidate.
        """
        self.maybe_reload()
        term = _normalize_term(name)
        if term not in self._aliases:
            return AliasLookup(term=term, status=AliasStatus.UNKNOWN)

        generic = self._aliases[term]
        if generic is None:
            return AliasLookup(term=term, status=AliasStatus.UNMAPPABLE)

        candidates = [generic]
        if " " in generic:
            for token in generic.split():
                if token not in candidates:
                    candidates.append(token)
        return AliasLookup(
            term=term,
            status=AliasStatus.MAPPED,
            generic=generic,
            candidates=tuple(candidates),
        )

    def expand_partial(self, query: str, limit: int = 5) -> List[AliasLookup]:
        """
        Alias lookups for a typeahead fragment.

        An exact alias key wins outright; otherwise every brand containing the
        fragment is returned, prefix matches first.
        """
        self.maybe_reload()
        term = _normalize_term(query)
        if not term:
            return []
        if term in self._aliases:
            return [self.normalize(term)]
        brands = [b for b in self._aliases if term in b]
        return [self.normalize(brand) for brand, _ in rank(brands, term, limit=limit)]

    def search(self, query: str) -> List[Dict[str, Any]]:
        """Brands whose name contains the query (local alias search)"""
        self.maybe_reload()
        term = _normalize_term(query)
        return [
            {
                "brand": brand,
                "generic": generic,
                "relevance": "high" if brand.startswith(term) else "medium",
                "source": "Local",
            }
            for brand, generic in self._aliases.items()
            if term and term in brand
        ]

    def is_regional_brand(self, name: str) -> bool:
        return _normalize_term(name) in self._aliases

    def aliases(self) -> Dict[str, Optional[str]]:
        self.maybe_reload()
        return dict(self._aliases)

    def __len__(self) -> int:
        return len(self._aliases)

    # ------------------------------------------------------------------ admin

    def promote(self, brand: str, generic: Optional[str]) -> Tuple[str, Optional[str]]:
        """Add or replace an alias and persist it to the alias file"""
        key = _normalize_term(brand)
        if not key:
            raise ValueError("brand required")
        value = None
        if generic is not None:
            value = _normalize_term(generic) or None

        if self.path is None:
            self._aliases[key] = value
            return key, value

        # a missing or unreadable file starts from the table currently served
        current: Dict[str, Any] = dict(self._aliases)
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except ValueError as e:
                logger.warning(f"Brand alias file {self.path} is not valid JSON, rewriting it: {e}")
                data = None
            if isinstance(data, dict):
                current = data
            elif data is not None:
                logger.warning(f"Brand alias file {self.path} must contain a JSON object, rewriting it")
        current[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(current, f, ensure_ascii=False, indent=2)

        self.force_reload()
        logger.info(f"Promoted brand alias: {key} -> {value}")
        return key, value


class UnknownTermLog:
    """
    Append-only JSONL log of unrecognized drug terms for later alias review.

    Each distinct term is written at most once per window.
    """

    def __init__(
        self,
        path: PathLike,
        window_seconds: float = 3600.0,
        min_length: int = 2,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.window_seconds = window_seconds
        self.min_length = min_length
        self.clock = clock
        self._last_logged: Dict[str, float] = {}

    def record(self, term: str, context: str = "resolve") -> bool:
        """Log an unknown term; returns True if a line was written"""
        key = _normalize_term(term)
        if len(key) < self.min_length:
            return False

        now = self.clock()
        self._last_logged = {
            k: t for k, t in self._last_logged.items() if now - t < self.window_seconds
        }
        last = self._last_logged.get(key)
        if last is not None and now - last < self.window_seconds:
            return False
        self._last_logged[key] = now

        line = json.dumps({
            "t": datetime.now(timezone.utc).isoformat(),
            "term": key,
            "ctx": context,
        })
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.warning(f"Failed to write unknown term '{key}': {e}")
            return False
        logger.info(f"Unknown drug term recorded: '{key}' ({context})")
        return True

    def _read_entries(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        entries = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except ValueError:
                    logger.debug(f"Skipping malformed unknown-term line: {line[:80]}")
        return entries

    def summarize(self) -> List[Dict[str, Any]]:
        """Counts per term, most frequent first"""
        counts = Counter(
            _normalize_term(entry.get("term"))
            for entry in self._read_entries()
            if _normalize_term(entry.get("term"))
        )
        return [
            {"term": term, "count": count}
            for term, count in sorted(counts.items(), key=lambda item: item[1], reverse=True)
        ]

    def clear(self, term: Optional[str] = None) -> int:
        """Remove all entries, or only those for one term; returns lines removed"""
        entries = self._read_entries()
        if term is None:
            kept: List[Dict[str, Any]] = []
            self._last_logged.clear()
        else:
            key = _normalize_term(term)
            kept = [e for e in entries if _normalize_term(e.get("term")) != key]
            self._last_logged.pop(key, None)

        if entries or self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                for entry in kept:
                    f.write(json.dumps(entry) + "\n")
        return len(entries) - len(kept)
