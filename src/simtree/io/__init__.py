from .lastfm_client import LastfmClient, make_client_from_settings

__all__ = ["LastfmClient", "make_client_from_settings"]
