"""
Services Layer

Engine operations over a TournamentStore:
- Accept domain inputs (ids, names, typed update structs)
- Return domain outputs (models, report dataclasses)
- Do NOT depend on HTTP request/response objects
- Do NOT look up a global session or cache; collaborators are passed in
"""
