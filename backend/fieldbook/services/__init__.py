"""
Services Layer

Booking logic that:
- Accepts domain inputs (IDs, sessions, filters)
- Returns domain outputs (models, pydantic results)
- Does NOT depend on HTTP request/response objects
- Only writes where the operation is explicitly a write (reservations, pricing, auth)
"""
