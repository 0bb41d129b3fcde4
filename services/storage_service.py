# services/storage_service.py
"""
Storage Service
------------------------------------------------------------------------------
Upload de fotos (lojas e produtos) para um bucket público:

- SupabaseStorage: API REST do Supabase Storage via requests.Session (pool de
  conexões, SEM retentativas; falhas sobem direto para a rota).
- LocalStorage:    grava em disco (dev/testes); servido em /uploads/<nome>.
- UnavailableStorage: sem configuração; qualquer upload levanta StorageError.

Nome do objeto: "<epoch em ms>-<nome original sanitizado>".
Arquivos órfãos não são removidos quando a entidade é excluída.

Variáveis de ambiente:
- STORAGE_BACKEND         (supabase | local; padrão supabase)
- SUPABASE_URL / VITE_SUPABASE_URL
- SUPABASE_SERVICE_ROLE_KEY / VITE_SUPABASE_ANON_KEY
- STORAGE_BUCKET          (padrão "photos")
- UPLOAD_DIR              (LocalStorage; padrão ./uploads)
- REQUEST_TIMEOUT_SECONDS (padrão 30s)
------------------------------------------------------------------------------
"""

import os
import time
import logging
import requests
from requests.adapters import HTTPAdapter
from werkzeug.utils import secure_filename

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30.0"))


class StorageError(Exception):
    """Falha ao gravar o arquivo no storage."""


def object_name(filename):
    """Prefixa o nome com o timestamp em ms (nomes repetidos não colidem)."""
    safe = secure_filename(filename or "") or "arquivo"
    return f"{int(time.time() * 1000)}-{safe}"


class SupabaseStorage:
    """Cliente mínimo do Supabase Storage (upload + URL pública)."""

    def __init__(self, url, key, bucket="photos", timeout=DEFAULT_TIMEOUT):
        self.base_url = url.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout

        self.session = requests.Session()
        adapter = HTTPAdapter(pool_connections=10, pool_maxsize=10, max_retries=0)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({
            "Authorization": f"Bearer {key}",
            "apikey": key,
        })

    def public_url(self, name):
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{name}"

    def upload(self, file_storage):
        """Envia um werkzeug FileStorage; retorna a URL pública."""
        name = object_name(file_storage.filename)
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{name}"
        headers = {
            "Content-Type": file_storage.mimetype or "application/octet-stream",
            "x-upsert": "false",
        }
        try:
            res = self.session.post(url, data=file_storage.read(), headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            log.error("STORAGE erro de rede no upload de %s: %s", name, e)
            raise StorageError(f"Falha no upload: {e}") from e

        if not res.ok:
            try:
                msg = res.json().get("message") or res.text
            except ValueError:
                msg = res.text
            log.error("STORAGE %s no upload de %s: %s", res.status_code, name, msg[:200])
            raise StorageError(msg or f"Falha no upload (HTTP {res.status_code})")

        log.info("STORAGE upload ok: %s/%s", self.bucket, name)
        return self.public_url(name)


class LocalStorage:
    """Grava os uploads em `directory`; URLs apontam para `base_url`."""

    def __init__(self, directory, base_url="/uploads"):
        self.directory = directory
        self.base_url = base_url.rstrip("/")
        os.makedirs(directory, exist_ok=True)

    def upload(self, file_storage):
        name = object_name(file_storage.filename)
        try:
            file_storage.save(os.path.join(self.directory, name))
        except OSError as e:
            raise StorageError(f"Falha ao gravar arquivo: {e}") from e
        return f"{self.base_url}/{name}"


class UnavailableStorage:
    def __init__(self, reason):
        self.reason = reason

    def upload(self, file_storage):
        raise StorageError(f"Storage não configurado: {self.reason}")


def storage_from_env(upload_dir=None):
    """Escolhe o backend conforme STORAGE_BACKEND e as credenciais presentes."""
    backend = (os.getenv("STORAGE_BACKEND") or "supabase").strip().lower()
    if backend == "local":
        directory = upload_dir or os.getenv("UPLOAD_DIR") or os.path.abspath("uploads")
        return LocalStorage(directory)

    url = os.getenv("SUPABASE_URL") or os.getenv("VITE_SUPABASE_URL") or ""
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("VITE_SUPABASE_ANON_KEY") or ""
    if not url or not key:
        log.warning("Storage indisponível (temUrl=%s, temKey=%s)", bool(url), bool(key))
        return UnavailableStorage("SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY ausentes")
    return SupabaseStorage(url, key, bucket=os.getenv("STORAGE_BUCKET", "photos"))
