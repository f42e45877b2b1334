"""
Collecteurs de métadonnées d'instance cloud (AWS, Azure)

Ce module interroge le service de métadonnées local (169.254.169.254) :
- AWS : jeton IMDSv2 puis document d'identité d'instance (transmis brut)
- Azure : document d'instance, reformaté en JSON indenté

Les échecs sont classés (service injoignable / document invalide) et
logués, sans jamais bloquer l'envoi des métriques.
"""

import json
from typing import Optional

import requests

from .base import BaseCollector


METADATA_HOST = "http://169.254.169.254"

AWS_TOKEN_URL = f"{METADATA_HOST}/latest/api/token"
AWS_DOCUMENT_URL = f"{METADATA_HOST}/latest/dynamic/instance-identity/document"
AWS_TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
AWS_TOKEN_HEADER = "X-aws-ec2-metadata-token"
AWS_TOKEN_TTL_SECONDS = 21600

AZURE_API_VERSION = "2021-02-01"
AZURE_INSTANCE_URL = f"{METADATA_HOST}/metadata/instance?api-version={AZURE_API_VERSION}"


class MetadataError(Exception):
    """Erreur de récupération des métadonnées d'instance"""


class MetadataUnreachableError(MetadataError):
    """Le service de métadonnées ne répond pas (connexion, timeout)"""


class MalformedMetadataError(MetadataError):
    """Le service a répondu mais le document est inutilisable"""


class CloudMetadataCollector(BaseCollector):
    """
    Base commune des collecteurs de métadonnées cloud
    """

    provider = 'cloud'

    def __init__(self, settings, logger, session: Optional[requests.Session] = None):
        super().__init__(settings, logger)
        self.session = session or requests.Session()
        self.timeout = settings.metrics_timeout

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Effectue une requête vers le service de métadonnées

        Raises:
            MetadataUnreachableError: Erreur réseau ou timeout
        """
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise MetadataUnreachableError(
                f"{self.provider} metadata service unreachable ({url}): {e}"
            ) from e

    def _check_status(self, response: requests.Response, what: str):
        """Enregistre un document invalide si le statut HTTP n'est pas 2xx"""
        if not response.ok:
            self._record_error(MalformedMetadataError(
                f"{self.provider} {what} returned HTTP {response.status_code}"
            ))


class AwsMetadataCollector(CloudMetadataCollector):
    """
    Collecteur du document d'identité d'instance EC2 (IMDSv2)
    """

    provider = 'AWS'

    def collect(self) -> bytes:
        """
        Récupère le document d'identité

        Returns:
            bytes: Réponse brute du service (octets non décodés), terminée par un saut de ligne
        """
        self._start_collection()
        document = b''

        try:
            token = self._fetch_token()
            document = self._fetch_document(token)
        except MetadataUnreachableError as e:
            self._record_error(e, 'error')

        self._end_collection()
        return document.rstrip(b'\n') + b'\n'

    def _fetch_token(self) -> str:
        response = self._request(
            'PUT',
            AWS_TOKEN_URL,
            headers={AWS_TOKEN_TTL_HEADER: str(AWS_TOKEN_TTL_SECONDS)}
        )
        self._check_status(response, 'token request')
        return response.text

    def _fetch_document(self, token: str) -> bytes:
        response = self._request(
            'GET',
            AWS_DOCUMENT_URL,
            headers={AWS_TOKEN_HEADER: token}
        )
        self._check_status(response, 'identity document')

        # Document transmis tel quel, la validation ne sert qu'au diagnostic
        try:
            json.loads(response.content)
        except ValueError as e:
            self._record_error(MalformedMetadataError(f"AWS identity document is not valid JSON: {e}"))

        return response.content


class AzureMetadataCollector(CloudMetadataCollector):
    """
    Collecteur du document d'instance Azure (IMDS)
    """

    provider = 'Azure'

    def __init__(self, settings, logger, session: Optional[requests.Session] = None):
        super().__init__(settings, logger, session)
        # Le service de métadonnées ne doit jamais passer par un proxy
        self.session.trust_env = False

    def collect(self) -> bytes:
        """
        Récupère le document d'instance et le reformate

        Returns:
            bytes: JSON indenté (ou vide si invalide), terminé par un saut de ligne
        """
        self._start_collection()
        document = b''

        try:
            document = self._fetch_document()
        except MetadataError as e:
            level = 'error' if isinstance(e, MetadataUnreachableError) else 'warning'
            self._record_error(e, level)

        self._end_collection()
        return document + b'\n'

    def _fetch_document(self) -> bytes:
        response = self._request(
            'GET',
            AZURE_INSTANCE_URL,
            headers={'Metadata': 'true'},
            proxies={'http': None, 'https': None}
        )
        self._check_status(response, 'instance document')

        try:
            data = json.loads(response.content)
        except ValueError as e:
            raise MalformedMetadataError(f"Azure instance document is not valid JSON: {e}") from e

        return json.dumps(data, indent=4).encode('utf-8')
