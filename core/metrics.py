"""Prometheus metrics for observability."""

from prometheus_client import Counter, Histogram, Info

# Vault (external biometric API) Metrics
vault_call_duration = Histogram(
    'voiceprint_vault_call_duration_seconds',
    'Vault API call duration',
    ['operation'],  # createFeature, searchFea, deleteFeature, createGroup
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
)

vault_errors = Counter(
    'voiceprint_vault_errors_total',
    'Vault API errors',
    ['operation', 'error_class']  # transport, authentication, parameter, system, other
)

# Orchestration Metrics
enrollment_total = Counter(
    'voiceprint_enrollment_total',
    'Total voiceprint enrollment attempts',
    ['status']  # success or failure tag
)

identification_total = Counter(
    'voiceprint_identification_total',
    'Total voiceprint identification attempts',
    ['status']  # matched, no_match, or failure tag
)

identification_latency = Histogram(
    'voiceprint_identification_latency_seconds',
    'End-to-end identification latency',
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
)

deletion_total = Counter(
    'voiceprint_deletion_total',
    'Total voiceprint deletion attempts',
    ['status']  # success, partial, not_found
)

compensation_total = Counter(
    'voiceprint_compensation_total',
    'Best-effort vault deletes after a failed local write',
    ['status']  # success, failed
)

# Audio Processing Metrics
audio_normalization_total = Counter(
    'voiceprint_audio_normalization_total',
    'Audio normalization outcomes',
    ['path']  # passthrough, converted, unrecognized
)

# System Info
app_info = Info('voiceprint_app', 'Application information')
app_info.info({
    'version': '1.0.0',
    'service': 'voiceprint-identity-service',
    'features': 'enroll,identify,delete,audit'
})
