# memdav/__main__.py
from memdav.main import run

run()
