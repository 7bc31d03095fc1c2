"""episodegen : titres et synopsis d'épisodes générés à partir de sous-titres."""

__version__ = "0.3.0"
