# Register the table models before any test database is created
from tournament_engine.models.bracket import Bracket  # noqa: F401
from tournament_engine.models.game import Game  # noqa: F401
from tournament_engine.models.pool import Pool  # noqa: F401
