from prometheus_client import Counter, Histogram

# Project store
projects_stored = Counter(
    'rfp_projects_stored_total',
    'Projects written to the knowledge base',
    ['outcome']  # success, failure
)

# Knowledge base
kb_operation_latency = Histogram(
    'rfp_kb_operation_latency_seconds',
    'Knowledge base operation latency',
    ['operation'],
    buckets=(0.05, 0.1, 0.5, 1, 2, 5, 10)
)

kb_errors = Counter(
    'rfp_kb_errors_total',
    'Knowledge base errors',
    ['operation', 'error_type']
)

# LLM agents
llm_latency = Histogram(
    'rfp_llm_latency_seconds',
    'LLM call latency',
    ['backend'],
    buckets=(1, 2, 5, 10, 30, 60, 120)
)

# Matchers
matcher_latency = Histogram(
    'rfp_matcher_latency_seconds',
    'Project matching latency',
    ['matcher_type'],
    buckets=(1, 2, 5, 10, 30, 60)
)

matcher_scores = Histogram(
    'rfp_matcher_score',
    'Project match scores',
    ['matcher_type'],
    buckets=(10, 30, 50, 70, 90)
)

matcher_errors = Counter(
    'rfp_matcher_errors_total',
    'Matching errors',
    ['matcher_type', 'error_type']  # call_error, malformed_response, search_error
)

# Fit analysis
fit_verdicts = Counter(
    'rfp_fit_verdicts_total',
    'Fit analysis verdicts',
    ['verdict']  # good_fit, not_good_fit, no_similar, unanalyzable
)
