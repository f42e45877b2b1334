"""
Module de configuration pour le rapporteur de données d'instance

Ce module gère la configuration du rapporteur, incluant :
- Lecture du fichier de configuration key=value (format push_metrics.cfg)
- Validation des paramètres obligatoires
- Valeurs par défaut
- Normalisation du port du serveur de métriques
"""

import os
import re
import configparser
from dataclasses import dataclass
from typing import Optional


# Fichier de configuration partagé avec push_metrics.sh
DEFAULT_CONFIG_FILE = "/p4/common/config/.push_metrics.cfg"
DEFAULT_LOG_FILE = "/p4/1/logs/report_instance_data.log"
DEFAULT_TIMEOUT = 30

REQUIRED_KEYS = (
    'metrics_host',
    'metrics_customer',
    'metrics_instance',
    'metrics_user',
    'metrics_passwd',
)

# Section fictive : le fichier n'a pas d'en-tête de section. Les lignes
# "[...]" éventuelles sont ignorées pour que toutes les clés restent dans
# cette section ; les clés sont insensibles à la casse (optionxform).
SECTION_HEADER = re.compile(r'^\s*\[[^\]]*\]\s*$')
_SECTION = 'metrics'

PUSHGATEWAY_PORT = '9091'
DATAPUSHGATEWAY_PORT = '9092'


class ConfigurationError(Exception):
    """Erreur fatale de configuration détectée au démarrage"""


def normalize_host(host: str) -> str:
    """
    Convertit le port pushgateway (9091) en port datapushgateway (9092)

    Substitution de suffixe uniquement : un hôte qui ne se termine pas
    par 9091 est retourné tel quel.

    Args:
        host: URL de base du serveur de métriques

    Returns:
        str: URL normalisée
    """
    if host.endswith(PUSHGATEWAY_PORT):
        return host[:-len(PUSHGATEWAY_PORT)] + DATAPUSHGATEWAY_PORT
    return host


@dataclass(frozen=True)
class MetricsSettings:
    """Configuration immuable construite une seule fois au démarrage"""
    metrics_host: str
    metrics_customer: str
    metrics_instance: str
    metrics_user: str
    metrics_passwd: str
    metadata_logfile: str = DEFAULT_LOG_FILE
    metrics_timeout: int = DEFAULT_TIMEOUT
    log_level: str = 'INFO'

    @property
    def push_url(self) -> str:
        """URL complète du point de réception des données"""
        return (f"{self.metrics_host}/data/?customer={self.metrics_customer}"
                f"&instance={self.metrics_instance}")

    def describe(self) -> dict:
        """
        Retourne la configuration sans le mot de passe

        Returns:
            dict: Paramètres affichables dans les logs
        """
        return {
            'metrics_host': self.metrics_host,
            'metrics_customer': self.metrics_customer,
            'metrics_instance': self.metrics_instance,
            'metrics_user': self.metrics_user,
            'metrics_passwd': '********',
            'metadata_logfile': self.metadata_logfile,
            'metrics_timeout': self.metrics_timeout,
            'log_level': self.log_level,
        }


class ReporterConfig:
    """
    Chargeur de configuration pour le rapporteur

    Lit un fichier key=value sans section avec configparser et produit
    une instance de MetricsSettings.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialise le chargeur

        Args:
            config_file: Chemin vers le fichier de configuration (optionnel)
        """
        self.config_file = config_file or DEFAULT_CONFIG_FILE
        self.config = configparser.ConfigParser(
            interpolation=None,
            strict=False,
            allow_no_value=True,
            delimiters=('=',),
            comment_prefixes=('#', ';'),
        )

    def _read(self):
        """
        Lit le fichier de configuration dans la section fictive

        Raises:
            ConfigurationError: Fichier absent ou illisible
        """
        if not os.path.isfile(self.config_file):
            raise ConfigurationError(f"Can't find config file: {self.config_file}!")

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                lines = [line for line in f if not SECTION_HEADER.match(line)]
            content = ''.join(lines)
            self.config.read_string(f"[{_SECTION}]\n{content}", source=self.config_file)
        except (OSError, configparser.Error) as e:
            raise ConfigurationError(f"Unable to read config file {self.config_file}: {e}") from e

    def get(self, option: str, fallback: Optional[str] = None) -> Optional[str]:
        """
        Récupère une valeur de configuration

        Les valeurs vides sont traitées comme absentes.

        Args:
            option: Nom de la clé
            fallback: Valeur par défaut si non trouvée

        Returns:
            str: Valeur de configuration
        """
        value = self.config.get(_SECTION, option, fallback=None)
        if value is None or not value.strip():
            return fallback
        return value.strip()

    def getint(self, option: str, fallback: int) -> int:
        """
        Récupère une valeur entière de configuration

        Raises:
            ConfigurationError: Valeur non numérique
        """
        value = self.get(option)
        if value is None:
            return fallback
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"Invalid integer value for {option}: {value}")

    def load(self) -> MetricsSettings:
        """
        Charge et valide la configuration

        Returns:
            MetricsSettings: Configuration immuable

        Raises:
            ConfigurationError: Fichier absent ou paramètres obligatoires manquants
        """
        self._read()

        missing = [key for key in REQUIRED_KEYS if self.get(key) is None]
        if missing:
            raise ConfigurationError(
                "Required parameters not supplied.\n"
                f"You must set the variables {', '.join(REQUIRED_KEYS)} in {self.config_file}."
                f" Missing: {', '.join(missing)}"
            )

        timeout = self.getint('metrics_timeout', DEFAULT_TIMEOUT)
        if timeout <= 0:
            raise ConfigurationError(f"metrics_timeout must be positive: {timeout}")

        return MetricsSettings(
            metrics_host=normalize_host(self.get('metrics_host')),
            metrics_customer=self.get('metrics_customer'),
            metrics_instance=self.get('metrics_instance'),
            metrics_user=self.get('metrics_user'),
            metrics_passwd=self.get('metrics_passwd'),
            metadata_logfile=self.get('metadata_logfile', DEFAULT_LOG_FILE),
            metrics_timeout=timeout,
            log_level=self.get('log_level', 'INFO').upper(),
        )


def load_settings(config_file: Optional[str] = None) -> MetricsSettings:
    """
    Fonction utilitaire pour charger la configuration

    Args:
        config_file: Chemin vers le fichier de configuration

    Returns:
        MetricsSettings: Configuration validée
    """
    return ReporterConfig(config_file).load()
