# Developer tooling dataset toolkit
# Collapses, enriches and curates the developer-tooling project dataset

from .collapse import CollapseOptions, CollapseSummary, collapse_records
from .categorizer import suggest_category

__all__ = ['CollapseOptions', 'CollapseSummary', 'collapse_records', 'suggest_category']
