"""Services module.

This module provides the service layer architecture:
- exceptions: Custom service exceptions
- quotes: Quote numbering, totals and CRUD
- clients: Client records
- board: Drag-and-drop status board
- dashboard: Dashboard statistics
- insights: AI-generated business insights with caching
- email: Quote delivery by e-mail
- external: Third-party API integrations (OpenAI, Resend)
- mercure: Real-time event publishing
"""
