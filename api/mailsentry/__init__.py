"""
MailSentry: email threat triage service.

Components:
- pipeline/deterministic.py: ordered keyword rules and quarantine policy
- pipeline/classify.py: candidate email -> scan record input
- store.py: monitoring registry and scan record store
- lifecycle.py: quarantine / release / delete transitions
- ingestion.py: batch and simulated ingestion
"""

__version__ = "0.1.0"
