"""Data loader for reading and indexing OEM candidates from the filesystem."""

import json
import logging
from pathlib import Path
from typing import Optional

from core.constants import SORT_BEST_MATCH
from core.data_io import extract_records, normalize_candidates
from core.models import Candidate, Criteria, ExternalScore
from oem_matcher import DEFAULT_VIEW, OEMMatcher

from .schemas import IndexStats, MatchListResponse, ScoredOEMResponse


class CandidateIndex:
    """In-memory index for fast candidate lookups."""

    def __init__(self, data_path: str | Path):
        """Initialize the candidate index.

        Args:
            data_path: A JSON export of OEM records, or a directory of them
        """
        self.data_path = Path(data_path)
        self._candidates: dict[str, Candidate] = {}
        self._by_slug: dict[str, str] = {}
        self._loaded = False

    def _files(self) -> list[Path]:
        if self.data_path.is_dir():
            return sorted(self.data_path.glob("*.json"))
        return [self.data_path]

    def load(self) -> None:
        """Load all candidates into memory."""
        self._candidates.clear()
        self._by_slug.clear()

        if not self.data_path.exists():
            raise FileNotFoundError(f"Candidate data not found: {self.data_path}")

        for file_path in self._files():
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    records = extract_records(json.load(f))
            except (json.JSONDecodeError, ValueError) as e:
                # Log error but continue loading other files
                logging.warning(f"Error loading {file_path}: {e}")
                continue

            for candidate in normalize_candidates(records):
                if not candidate.organization_id:
                    logging.warning(f"Skipping OEM without organization id in {file_path}: {candidate.name!r}")
                    continue
                if candidate.organization_id in self._candidates:
                    logging.debug(f"Duplicate OEM {candidate.organization_id} in {file_path}, keeping latest")
                self._candidates[candidate.organization_id] = candidate
                if candidate.slug:
                    self._by_slug[candidate.slug] = candidate.organization_id

        self._loaded = True

    def reload(self) -> None:
        """Reload all candidates from disk."""
        self.load()

    @property
    def is_loaded(self) -> bool:
        """Check if candidates have been loaded."""
        return self._loaded

    @property
    def total_candidates(self) -> int:
        return len(self._candidates)

    @property
    def candidates(self) -> list[Candidate]:
        """All loaded candidates in load order."""
        return list(self._candidates.values())

    def get(self, key: str) -> Optional[Candidate]:
        """Look up a candidate by organization id or slug."""
        if key in self._candidates:
            return self._candidates[key]
        org_id = self._by_slug.get(key)
        return self._candidates.get(org_id) if org_id else None

    def available_categories(self) -> list[str]:
        """Distinct product categories across all candidates, sorted."""
        return sorted({cat for c in self._candidates.values() for cat in c.categories})

    def available_locations(self) -> list[str]:
        return sorted({c.location for c in self._candidates.values() if c.location})

    def stats(self) -> IndexStats:
        return IndexStats(
            candidates_loaded=self.total_candidates,
            categories=self.available_categories(),
            locations=self.available_locations(),
        )

    def list_matches(
        self,
        criteria: Criteria,
        view: str = DEFAULT_VIEW,
        sort_by: str = SORT_BEST_MATCH,
        overrides: Optional[dict[str, ExternalScore]] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> MatchListResponse:
        """Match the loaded candidates and return one page of results.

        Args:
            criteria: Buyer criteria
            view: View preset ("listing" or "results")
            sort_by: Sort mode
            overrides: Optional AI ranking overrides
            page: Page number (1-indexed)
            page_size: Items per page

        Returns:
            MatchListResponse for the requested page

        Raises:
            ValueError: If page or page_size is below 1
        """
        if page < 1 or page_size < 1:
            raise ValueError(f"page and page_size must be >= 1 (got page={page}, page_size={page_size})")

        matches = OEMMatcher(self.candidates, view=view).match(criteria, overrides=overrides, sort_by=sort_by)

        start = (page - 1) * page_size
        end = start + page_size
        page_results = matches.results[start:end]

        return MatchListResponse(
            total=matches.total_matches,
            page=page,
            page_size=page_size,
            results=[ScoredOEMResponse.from_result(r) for r in page_results],
            metadata=matches.metadata,
        )
