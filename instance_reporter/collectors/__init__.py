"""
Package des collecteurs de données d'instance

Ce package contient :
- Collecteur de base (classe abstraite)
- Collecteur d'identité de l'hôte
- Collecteurs de métadonnées cloud (AWS, Azure)
"""
