"""
Module collecteur principal du rapporteur de données d'instance

Ce module orchestre la collecte :
- Identité de l'hôte (toujours en premier)
- Document de métadonnées selon la plateforme (AWS, Azure ou aucune)
- Écriture du payload dans le fichier temporaire <metrics_root>/_instance_data.log
"""

import os
from enum import Enum
from typing import Optional

import requests

from ..collectors.host import HostIdentityCollector
from ..collectors.cloud import AwsMetadataCollector, AzureMetadataCollector


DEFAULT_METRICS_ROOT = "/p4/metrics"
INSTANCE_DATA_FILENAME = "_instance_data.log"


class Platform(Enum):
    """Plateforme cloud dont on collecte les métadonnées"""
    AWS = "aws"
    AZURE = "azure"
    NONE = "none"


class InstanceDataCollector:
    """
    Collecteur principal qui assemble le payload

    Le payload est un bloc d'octets opaque : aucune structure n'est interprétée,
    il est transmis octet pour octet.
    """

    def __init__(self, settings, logger, platform: Platform = Platform.AWS,
                 session: Optional[requests.Session] = None):
        """
        Initialise le collecteur principal

        Args:
            settings: Instance de MetricsSettings
            logger: Instance de ReporterLogger
            platform: Plateforme cloud sélectionnée
            session: Session HTTP pour le service de métadonnées (optionnelle)
        """
        self.settings = settings
        self.logger = logger.get_logger()
        self.platform = platform
        self.session = session

        self.host_collector = HostIdentityCollector(settings, self.logger)
        self.cloud_collector = self._create_cloud_collector()

        self.logger.debug(f"InstanceDataCollector initialisé (plateforme: {platform.value})")

    def _create_cloud_collector(self):
        if self.platform == Platform.AWS:
            return AwsMetadataCollector(self.settings, self.logger, self.session)
        elif self.platform == Platform.AZURE:
            return AzureMetadataCollector(self.settings, self.logger, self.session)
        return None

    def collect(self) -> bytes:
        """
        Assemble le payload complet

        Returns:
            bytes: Identité de l'hôte suivie du document de métadonnées
        """
        self.logger.debug("Collecte des informations d'instance")
        payload = self.host_collector.collect()

        if self.cloud_collector is not None:
            payload += self.cloud_collector.collect()

        return payload

    def collect_to_file(self, metrics_root: str = DEFAULT_METRICS_ROOT) -> str:
        """
        Collecte et écrit le payload dans le fichier temporaire

        Le fichier est écrasé à chaque exécution et n'est pas supprimé.

        Args:
            metrics_root: Dossier des métriques

        Returns:
            str: Chemin du fichier écrit
        """
        payload = self.collect()

        os.makedirs(metrics_root, exist_ok=True)
        data_file = os.path.join(metrics_root, INSTANCE_DATA_FILENAME)
        with open(data_file, 'wb') as f:
            f.write(payload)

        self.logger.debug(f"Données d'instance écrites dans: {data_file}")
        return data_file

    def get_collection_stats(self) -> dict:
        """
        Retourne les statistiques des collecteurs

        Returns:
            dict: Statistiques par collecteur
        """
        stats = {'host': self.host_collector.get_collection_stats()}
        if self.cloud_collector is not None:
            stats['cloud'] = self.cloud_collector.get_collection_stats()
        return stats

    def close(self):
        """Ferme la session HTTP du service de métadonnées"""
        if self.cloud_collector is not None:
            self.cloud_collector.session.close()
