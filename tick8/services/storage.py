import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tick8.core.config import Settings
from tick8.core.errors import InvalidInput, NotFound, StorageFailure

logger = logging.getLogger(__name__)

_TMP_PREFIX = ".tmp-"


def normalize_key(path: str) -> str:
    """
    Normalise un chemin logique relatif ("users/x/courses.json").
    Refuse les chemins absolus, les backslashes et tout segment "..".
    Renvoie "" pour la racine.
    """
    if path is None or not isinstance(path, str):
        raise InvalidInput("Chemin invalide")
    if "\\" in path or "\x00" in path:
        raise InvalidInput("Chemin invalide")
    if path.startswith("/"):
        raise InvalidInput("Chemin absolu interdit")

    parts = []
    for seg in path.split("/"):
        if seg in ("", "."):
            continue
        if seg == "..":
            raise InvalidInput("Chemin invalide (traversée de répertoire)")
        parts.append(seg)
    return "/".join(parts)


def join_key(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


class StorageBackend(ABC):
    """
    Stockage clé/valeur sur chemins logiques relatifs.
    `write` remplace l'objet entier : soit l'ancien contenu reste lisible,
    soit le nouveau l'est, jamais un objet partiel.
    """

    @abstractmethod
    def exists(self, path: str) -> bool: ...

    @abstractmethod
    def read(self, path: str) -> bytes: ...

    @abstractmethod
    def write(self, path: str, data: bytes) -> None: ...

    @abstractmethod
    def delete(self, path: str) -> None: ...

    @abstractmethod
    def list(self, dir_path: str) -> List[str]: ...

    @abstractmethod
    def ensure_dir(self, dir_path: str) -> None: ...


class LocalStorageBackend(StorageBackend):
    """
    Backend fichiers locaux, enraciné dans `base_path`.
    """

    def __init__(self, base_path: str = "./data"):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        key = normalize_key(path)
        full = (self.base_path / key).resolve() if key else self.base_path
        # liens symboliques compris
        if full != self.base_path and self.base_path not in full.parents:
            raise InvalidInput("Chemin hors de la racine de stockage")
        return full

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def read(self, path: str) -> bytes:
        full = self._resolve(path)
        try:
            return full.read_bytes()
        except FileNotFoundError:
            raise NotFound(f"Objet introuvable: {path}")
        except OSError as e:
            raise StorageFailure(f"Lecture impossible de {full}: {e}") from e

    def write(self, path: str, data: bytes) -> None:
        full = self._resolve(path)
        if full == self.base_path:
            raise InvalidInput("Impossible d'écrire à la racine")

        tmp_name = None
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=_TMP_PREFIX, dir=str(full.parent))
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, full)
            tmp_name = None
        except OSError as e:
            raise StorageFailure(f"Écriture impossible de {full}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Fichier temporaire non supprimé: %s", tmp_name)

    def delete(self, path: str) -> None:
        full = self._resolve(path)
        try:
            full.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailure(f"Suppression impossible de {full}: {e}") from e

    def list(self, dir_path: str) -> List[str]:
        full = self._resolve(dir_path)
        if not full.is_dir():
            return []
        try:
            return sorted(
                p.name for p in full.iterdir()
                if p.is_file() and not p.name.startswith(_TMP_PREFIX)
            )
        except OSError as e:
            raise StorageFailure(f"Listing impossible de {full}: {e}") from e

    def ensure_dir(self, dir_path: str) -> None:
        full = self._resolve(dir_path)
        try:
            full.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(f"Création impossible de {full}: {e}") from e


class S3StorageBackend(StorageBackend):
    """
    Backend objet (S3 ou compatible). Espace de noms plat : les "dossiers"
    sont des préfixes, `ensure_dir` ne fait rien.
    """

    def __init__(self, bucket: str, prefix: str = "", client=None,
                 region: Optional[str] = None, endpoint_url: Optional[str] = None):
        self.bucket = bucket
        self.prefix = normalize_key(prefix)
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                service_name="s3",
                region_name=region,
                endpoint_url=endpoint_url,
            )
        self.client = client

    def _key(self, path: str) -> str:
        return join_key(self.prefix, normalize_key(path))

    @staticmethod
    def _is_missing(err: ClientError) -> bool:
        code = str(err.response.get("Error", {}).get("Code", ""))
        return code in ("404", "NoSuchKey", "NotFound")

    def exists(self, path: str) -> bool:
        key = self._key(path)
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if self._is_missing(e):
                return False
            raise StorageFailure(f"head_object s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StorageFailure(f"head_object s3://{self.bucket}/{key}: {e}") from e

    def read(self, path: str) -> bytes:
        key = self._key(path)
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
            return obj["Body"].read()
        except ClientError as e:
            if self._is_missing(e):
                raise NotFound(f"Objet introuvable: {path}")
            raise StorageFailure(f"get_object s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StorageFailure(f"get_object s3://{self.bucket}/{key}: {e}") from e

    def write(self, path: str, data: bytes) -> None:
        key = self._key(path)
        if not normalize_key(path):
            raise InvalidInput("Impossible d'écrire à la racine")
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            raise StorageFailure(f"put_object s3://{self.bucket}/{key}: {e}") from e

    def delete(self, path: str) -> None:
        key = self._key(path)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if self._is_missing(e):
                return
            raise StorageFailure(f"delete_object s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StorageFailure(f"delete_object s3://{self.bucket}/{key}: {e}") from e

    def list(self, dir_path: str) -> List[str]:
        base = self._key(dir_path)
        prefix = f"{base}/" if base else ""
        names: List[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix, Delimiter="/"):
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(prefix):]
                    if name and "/" not in name:
                        names.append(name)
        except (ClientError, BotoCoreError) as e:
            raise StorageFailure(f"list_objects_v2 s3://{self.bucket}/{prefix}: {e}") from e
        return sorted(names)

    def ensure_dir(self, dir_path: str) -> None:
        normalize_key(dir_path)


def build_backend(settings: Settings) -> StorageBackend:
    """
    Choisit le backend au démarrage du process (STORAGE_BACKEND).
    """
    kind = (settings.STORAGE_BACKEND or "local").strip().lower()
    if kind == "s3":
        logger.info("Stockage S3: bucket=%s prefix=%r", settings.S3_BUCKET, settings.S3_PREFIX)
        return S3StorageBackend(
            bucket=settings.S3_BUCKET,
            prefix=settings.S3_PREFIX,
            region=settings.S3_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
        )
    if kind == "local":
        logger.info("Stockage local: %s", settings.STORAGE_PATH)
        return LocalStorageBackend(base_path=settings.STORAGE_PATH)
    raise ValueError(f"STORAGE_BACKEND inconnu: {settings.STORAGE_BACKEND}")
