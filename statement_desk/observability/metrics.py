"""
Prometheus metrics for the statement extraction service.
"""

from prometheus_client import Counter, Histogram


# ── Document Processing ─────────────────────────────────────
documents_parsed_total = Counter(
    "statement_documents_parsed_total",
    "Total documents run through the parse pipeline",
    ["outcome", "extraction_method"],
)

documents_failed_total = Counter(
    "statement_documents_failed_total",
    "Total documents that failed with a pipeline error",
    ["error_code"],
)

pipeline_duration_seconds = Histogram(
    "statement_pipeline_duration_seconds",
    "Time to parse a document end-to-end",
    ["extraction_method"],
    buckets=[0.5, 1, 5, 10, 30, 60, 120, 300],
)

pipeline_stage_duration_seconds = Histogram(
    "statement_pipeline_stage_duration_seconds",
    "Time per pipeline stage",
    ["stage"],
    buckets=[0.05, 0.1, 0.5, 1, 5, 10, 30, 60],
)

# ── Extraction ───────────────────────────────────────────────
pages_extracted_total = Counter(
    "statement_pages_extracted_total",
    "Total pages with text acquired",
    ["extraction_path", "engine_name"],
)

pages_skipped_total = Counter(
    "statement_pages_skipped_total",
    "Pages left unread because the OCR page budget was spent",
)

transactions_extracted_total = Counter(
    "statement_transactions_extracted_total",
    "Total transactions extracted",
    ["transaction_type"],
)

# ── Enrichment ───────────────────────────────────────────────
anomalies_flagged_total = Counter(
    "statement_anomalies_flagged_total",
    "Transactions annotated with an anomaly",
    ["anomaly_type", "severity"],
)

ai_classifications_total = Counter(
    "statement_ai_classifications_total",
    "AI classifier batch calls",
    ["outcome"],
)

# ── External API Costs ───────────────────────────────────────
external_api_cost_usd = Counter(
    "statement_external_api_cost_usd_total",
    "Cumulative cost of external API calls in USD",
    ["engine_name", "operation"],
)

external_api_latency_seconds = Histogram(
    "statement_external_api_latency_seconds",
    "Latency of external API calls",
    ["engine_name", "operation"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)

# ── Export / Batch ───────────────────────────────────────────
exports_total = Counter(
    "statement_exports_total",
    "Export artifacts rendered",
    ["format", "scope"],
)

batch_documents_total = Counter(
    "statement_batch_documents_total",
    "Documents handled by batch runs",
    ["status"],
)
