from .cli import app

app(prog_name="playlist-archiver")
