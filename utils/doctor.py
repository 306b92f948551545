import os
from dotenv import load_dotenv
load_dotenv()

print("Key source:", "environment (LASTFM_KEY)" if os.getenv("LASTFM_KEY") else "similarity store")
print("LASTFM_KEY:", bool(os.getenv("LASTFM_KEY")))
print("SIMTREE_DB:", os.getenv("SIMTREE_DB", "data/cache/similar.db"))
print("LASTFM_BASE_URL:", os.getenv("LASTFM_BASE_URL", "https://ws.audioscrobbler.com/2.0/"))
