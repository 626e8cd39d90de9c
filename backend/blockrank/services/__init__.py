"""
Services Layer

Pure business logic services that:
- Accept domain inputs (IDs, sessions, plain records)
- Return domain outputs (dataclasses, dicts)
- Do NOT depend on HTTP request/response objects
- Only the store-facing helpers write; calculators are pure functions
"""
