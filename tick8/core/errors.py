class Tick8Error(Exception):
    """
    Erreur de base du coeur tick8.
    `operational` = erreur attendue, message affichable tel quel à l'appelant.
    """

    operational = True

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFound(Tick8Error):
    """Cours, fichier de vocabulaire, snapshot ou item absent."""


class InvalidInput(Tick8Error):
    """Nom de fichier, id de snapshot, schéma ou valeur hors bornes."""


class Conflict(Tick8Error):
    """Nom de cours déjà utilisé (création / renommage)."""


class StorageFailure(Tick8Error):
    """
    Erreur d'E/S du backend, non imputable à l'appelant.
    Le détail reste dans les logs serveur.
    """

    operational = False


class GeneratorUnavailable(Tick8Error):
    """Générateur IA non configuré ou en échec."""
