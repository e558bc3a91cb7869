"""
Session HTTP partagee par les clients fournisseurs.

- Connection pooling via requests.Session
- Pas de retry automatique: un echec remonte a l'orchestrateur qui le
  journalise puis le releve
- Cookies ignores: ils rendraient chaque requete differente
"""
from http.cookiejar import DefaultCookiePolicy

import requests
from requests.adapters import HTTPAdapter


class _NoCookiePolicy(DefaultCookiePolicy):
    def set_ok(self, cookie, request):
        return False


def create_session(pool_connections: int = 10, pool_maxsize: int = 20) -> requests.Session:
    """
    Cree une session HTTP configuree.

    Args:
        pool_connections: Nombre de pools (un par hote).
        pool_maxsize: Connexions par pool.

    Returns:
        Session requests.
    """
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
        max_retries=0,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.cookies.set_policy(_NoCookiePolicy())
    return session
