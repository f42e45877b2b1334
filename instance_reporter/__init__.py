"""
Instance Data Reporter - Rapport des métadonnées d'instance cloud

Ce module collecte l'identité de l'hôte et les métadonnées de l'instance
(AWS ou Azure) puis les envoie au serveur de métriques central.

Author: Instance Data Reporter Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Instance Data Reporter Team"

# Imports principaux pour faciliter l'utilisation
from .core.collector import InstanceDataCollector, Platform
from .core.config import MetricsSettings, load_settings
from .core.logger import ReporterLogger
from .core.sender import MetricsSender

__all__ = ['InstanceDataCollector', 'Platform', 'MetricsSettings', 'load_settings',
           'ReporterLogger', 'MetricsSender']
