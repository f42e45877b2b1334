"""
Module de communication avec le serveur de métriques

Ce module gère :
- L'envoi du payload au point de réception (datapushgateway)
- L'authentification basique
- Les tentatives de reconnexion au niveau transport (urllib3)
- La boucle de réessai sur les échecs d'authentification temporaires
"""

import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


MAX_PUSH_ATTEMPTS = 10
PUSH_DELAY_SECONDS = 1
TRANSPORT_RETRIES = 5

# Réponse renvoyée par intermittence par le serveur alors que les
# identifiants sont corrects. Comparaison exacte : ne pas élargir.
TRANSIENT_AUTH_FAILURE = '{"message":"invalid username or password"}'


def is_transient_auth_failure(body: str) -> bool:
    """
    Indique si la réponse est l'échec d'authentification temporaire connu

    Seule la chaîne littérale exacte est reconnue (aux blancs de fin
    près) ; toute autre réponse, même une vraie erreur, est un succès.

    Args:
        body: Corps de la réponse HTTP

    Returns:
        bool: True si l'envoi doit être retenté
    """
    return body.strip() == TRANSIENT_AUTH_FAILURE


def build_session(retries: int = TRANSPORT_RETRIES) -> requests.Session:
    """
    Crée une session HTTP avec réessais au niveau transport

    Args:
        retries: Nombre de réessais sur erreur de connexion ou 408/429/5xx

    Returns:
        requests.Session: Session configurée
    """
    session = requests.Session()
    retry_strategy = Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=(408, 429, 500, 502, 503, 504),
        allowed_methods=None,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


@dataclass
class PushAttempt:
    """Résultat d'une tentative d'envoi"""
    attempt: int
    response_body: str
    success: bool


class MetricsSender:
    """
    Gestionnaire d'envoi des données d'instance au serveur de métriques
    """

    def __init__(self, settings, logger, session: Optional[requests.Session] = None,
                 max_attempts: int = MAX_PUSH_ATTEMPTS,
                 delay: float = PUSH_DELAY_SECONDS):
        """
        Initialise le sender avec la configuration

        Args:
            settings: Instance de MetricsSettings
            logger: Instance de ReporterLogger
            session: Session HTTP (par défaut avec réessais transport)
            max_attempts: Nombre maximal de tentatives de la boucle
            delay: Attente fixe avant chaque tentative (secondes)
        """
        self.settings = settings
        self.logger = logger.get_logger()
        self.session = session or build_session()
        self.max_attempts = max_attempts
        self.delay = delay

        self.push_url = settings.push_url
        self.auth = (settings.metrics_user, settings.metrics_passwd)
        self.timeout = settings.metrics_timeout

        self.logger.debug(f"URL serveur: {self.push_url}")

    def push(self, data: bytes) -> Optional[str]:
        """
        Envoie le payload une fois

        Args:
            data: Contenu binaire à envoyer

        Returns:
            str: Corps de la réponse, ou None si le transport a échoué
        """
        try:
            response = self.session.post(
                self.push_url,
                data=data,
                auth=self.auth,
                timeout=self.timeout
            )
            return response.text

        except requests.exceptions.Timeout:
            self.logger.error(f"Timeout lors de l'envoi (>{self.timeout}s)")
        except requests.exceptions.ConnectionError as e:
            self.logger.error(f"Erreur de connexion: {e}")
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Erreur lors de l'envoi: {e}")
        return None

    def push_with_retry(self, data: bytes) -> Tuple[bool, List[PushAttempt]]:
        """
        Envoie le payload jusqu'au succès ou jusqu'au nombre maximal de tentatives

        Attente fixe avant chaque tentative (y compris la première),
        sans backoff exponentiel.

        Args:
            data: Contenu binaire à envoyer

        Returns:
            Tuple[bool, List[PushAttempt]]: (Succès final, tentatives effectuées)
        """
        attempts: List[PushAttempt] = []

        for attempt in range(1, self.max_attempts + 1):
            time.sleep(self.delay)

            self.logger.info("Pushing metrics")
            body = self.push(data)

            if body is None:
                attempts.append(PushAttempt(attempt, '', False))
                self.logger.warning(f"Tentative {attempt}/{self.max_attempts} échouée au niveau transport")
                continue

            self.logger.info(f"Checking result: {body.strip()}")

            if is_transient_auth_failure(body):
                attempts.append(PushAttempt(attempt, body, False))
                self.logger.info("Retrying due to temporary password failure")
                continue

            attempts.append(PushAttempt(attempt, body, True))
            return True, attempts

        self.logger.error("Push loop iterations exceeded")
        return False, attempts

    def push_file(self, data_file: str) -> Tuple[bool, List[PushAttempt]]:
        """
        Envoie le contenu d'un fichier (équivalent --data-binary @fichier)

        Args:
            data_file: Chemin du fichier de données

        Returns:
            Tuple[bool, List[PushAttempt]]: (Succès final, tentatives effectuées)
        """
        with open(data_file, 'rb') as f:
            data = f.read()

        self.logger.debug(f"Taille des données: {len(data)} bytes")
        return self.push_with_retry(data)

    def close(self):
        """Ferme la session HTTP"""
        self.session.close()
