import os


class Settings:
    PROJECT_NAME: str = "wtrivia"
    GAME_TITLE: str = "The Fun Trivia Game"
    DEBUG: bool = os.environ.get("DEBUG", "").lower() in ("1", "true", "yes")
    LOG_DIR: str = "log"
    LOG_FILE: str = "wtrivia.log"
    LOG_TO_DB: bool = os.environ.get("LOG_TO_DB", "").lower() in ("1", "true", "yes")
    DB_DIR: str = os.environ.get("DB_DIR", "db")
    DB_FILE: str = "wtrivia.db"
    CORPUS_DIR: str = os.environ.get("CORPUS_DIR", "corpus")
    THEMES_DIR: str = os.environ.get("THEMES_DIR", "themes")
    THEME: str = os.environ.get("THEME", "classic")
    QUESTIONS_PER_GAME: int = 4
    MAX_PREVIOUS_QUESTIONS: int = 100
    SUGGESTION_CHIPS_MAX: int = 8
    SUGGESTION_CHIPS_MAX_TEXT_LENGTH: int = 25
    TTS_DELAY: str = "500ms"
    SESSION_TIMEOUT_MINUTES: int = 120
    ROOT_PATH: str = os.environ.get("ROOT_PATH", "")


settings = Settings()
