from .config import settings
from .corpus import CorpusManager
from .database import UserStore
from .game import TriviaGame
from .themes import ThemeManager

corpus_manager = CorpusManager(settings.CORPUS_DIR)
theme_manager = ThemeManager(settings.THEMES_DIR)
user_store = UserStore()
game = TriviaGame(corpus_manager, theme_manager, user_store)
