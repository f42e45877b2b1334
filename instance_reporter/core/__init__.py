"""
Module Core - Composants principaux du rapporteur

Ce module contient les fonctionnalités de base :
- Configuration
- Logging
- Assemblage du payload
- Envoi avec réessais
- Planification quotidienne
"""
