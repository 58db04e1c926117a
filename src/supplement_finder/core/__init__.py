"""
Core data and ranking layer.

This package contains:
- records: typed supplement rows, flag and alias parsing
- record_store: load the CSV table (local file or URL)
- http_session: shared requests sessions with retry policies
- normalizer: display forms of keys, column names and flags
- matching: text match heuristics (safe prefix, vitamin letters and codes)
- classifiers: evidence tier and cost band rule tables
- pipeline: the Query value and the filter/sort pipeline
- presentation: card view models and the status line
- coach: CSV-only coaching summaries
- llm_coach: optional language-model coaching text
"""
