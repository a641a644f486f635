"""Live-document abstraction (``Document`` / ``Element``) and input event synthesis.

``base`` defines the contracts, ``playwright_dom`` adapts a Playwright
async page, and ``events`` turns click sequences into DOM events.
"""
