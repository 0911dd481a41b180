"""
Security module: PII redaction for logs.
"""
from car_analysis.security.pii_redactor import PIIRedactionFilter, redact_pii

__all__ = [
    'PIIRedactionFilter',
    'redact_pii'
]
