from songsort.tui.screens.import_decisions import ImportDecisionsScreen
from songsort.tui.screens.new_session import NewSessionScreen
from songsort.tui.screens.ranking import RankingScreen

__all__ = [
    "ImportDecisionsScreen",
    "NewSessionScreen",
    "RankingScreen",
]
