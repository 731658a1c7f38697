import hashlib
import hmac
import datetime
import requests
from urllib.parse import quote, unquote, urlparse
import logging

from core.config import (
    DO_SPACES_ENDPOINT, DO_SPACES_BUCKET, DO_SPACES_REGION, DO_SPACES_SECRET, DO_SPACES_KEY,
    UPLOAD_URL_TTL_SEC, UPLOAD_TIMEOUT_SEC,
)
from core.exceptions import ImageNotFoundError, StorageError, UploadFailedError

logger = logging.getLogger(__name__)

UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"

class DigitalOceanClient:
    def __init__(self, access_key: str = None, secret_key: str = None, bucket: str = None,
                 region: str = None, endpoint: str = None, timeout: float = None):
        self.access_key = access_key or DO_SPACES_KEY
        self.secret_key = secret_key or DO_SPACES_SECRET
        self.endpoint = endpoint or DO_SPACES_ENDPOINT
        self.bucket = bucket or DO_SPACES_BUCKET
        self.region = region or DO_SPACES_REGION
        self.timeout = timeout or UPLOAD_TIMEOUT_SEC
        self.service = "s3"
        self.request_type = "aws4_request"
        self.host = f"{self.bucket}.{urlparse(self.endpoint).netloc}"
        self.base_url = f"https://{self.host}/"

    def _sign(self, key: bytes, msg: str) -> bytes:
        """Firma un mensaje con la clave proporcionada"""
        return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()

    def _get_signing_key(self, date_stamp: str) -> bytes:
        """Genera la clave de firma en 4 pasos"""
        if not self.access_key or not self.secret_key:
            raise StorageError("DO Spaces credentials are not configured")
        k_date = self._sign(f"AWS4{self.secret_key}".encode(), date_stamp)
        k_region = self._sign(k_date, self.region)
        k_service = self._sign(k_region, self.service)
        return self._sign(k_service, self.request_type)

    def _credential_scope(self, date_stamp: str) -> str:
        return f"{date_stamp}/{self.region}/{self.service}/{self.request_type}"

    def _create_canonical_request(self, method: str, path: str, headers: dict, content_hash: str,
                                  query_string: str = "") -> str:
        """Crea la solicitud canónica para la firma"""
        sorted_headers = sorted(headers.items(), key=lambda x: x[0].lower())

        canonical_headers = "\n".join([f"{k.lower()}:{v}" for k, v in sorted_headers])
        signed_headers = ";".join([k.lower() for k, v in sorted_headers])

        return "\n".join([
            method,
            path,
            query_string,
            canonical_headers,
            "",
            signed_headers,
            content_hash
        ])

    def _generate_signature(self, canonical_request: str, date_stamp: str, amz_date: str, signing_key: bytes) -> str:
        """Genera la firma final"""
        string_to_sign = "\n".join([
            "AWS4-HMAC-SHA256",
            amz_date,
            self._credential_scope(date_stamp),
            hashlib.sha256(canonical_request.encode()).hexdigest()
        ])
        return hmac.new(signing_key, string_to_sign.encode(), hashlib.sha256).hexdigest()

    def object_url(self, file_path: str) -> str:
        return f"{self.base_url}{quote(file_path.lstrip('/'))}"

    def path_from_url(self, url: str):
        """Devuelve la ruta del objeto si la URL apunta a este bucket, o None"""
        if not url.startswith(self.base_url):
            return None
        return unquote(urlparse(url).path).lstrip("/")

    def create_upload_url(self, file_path: str, expires_in: int = None,
                          now: datetime.datetime = None) -> str:
        """Genera una URL prefirmada (query string SigV4) para un único PUT"""
        # 1. Preparar parámetros de fecha
        now = now or datetime.datetime.now(datetime.timezone.utc)
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        date_stamp = now.strftime("%Y%m%d")
        expires_in = expires_in or UPLOAD_URL_TTL_SEC

        # 2. Firmar solo el host; el contenido lo sube el cliente
        signing_key = self._get_signing_key(date_stamp)
        encoded_path = quote(file_path.lstrip('/'))
        params = {
            "X-Amz-Algorithm": "AWS4-HMAC-SHA256",
            "X-Amz-Credential": f"{self.access_key}/{self._credential_scope(date_stamp)}",
            "X-Amz-Date": amz_date,
            "X-Amz-Expires": str(expires_in),
            "X-Amz-SignedHeaders": "host",
        }
        query_string = "&".join(
            f"{quote(k, safe='-_.~')}={quote(v, safe='-_.~')}" for k, v in sorted(params.items())
        )

        # 3. Solicitud canónica y firma
        canonical_request = self._create_canonical_request(
            method="PUT",
            path=f"/{encoded_path}",
            headers={"host": self.host},
            content_hash=UNSIGNED_PAYLOAD,
            query_string=query_string
        )
        signature = self._generate_signature(
            canonical_request=canonical_request,
            date_stamp=date_stamp,
            amz_date=amz_date,
            signing_key=signing_key
        )

        return f"https://{self.host}/{encoded_path}?{query_string}&X-Amz-Signature={signature}"

    def upload_to_url(self, upload_url: str, file_content: bytes, content_type: str) -> None:
        """Sube el contenido a una URL prefirmada"""
        try:
            response = requests.put(
                upload_url,
                headers={"Content-Type": content_type},
                data=file_content,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            logger.error(f"Timeout subiendo a Digital Ocean tras {self.timeout}s")
            raise UploadFailedError(f"timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            logger.error(f"Error de conexión: {str(e)}")
            raise UploadFailedError("connection error with DO Spaces")

        if not response.ok:
            logger.error(f"Error en Digital Ocean: {response.status_code} - {response.text}")
            raise UploadFailedError(f"DO Spaces responded {response.status_code}")

    def download_file(self, file_path: str):
        """Descarga un objeto; devuelve (contenido, content_type)"""
        # 1. Preparar parámetros de fecha
        now = datetime.datetime.now(datetime.timezone.utc)
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        date_stamp = now.strftime("%Y%m%d")

        # 2. Codificar path y crear URL
        encoded_path = quote(file_path.lstrip('/'))
        url = f"https://{self.host}/{encoded_path}"
        empty_hash = hashlib.sha256(b"").hexdigest()

        # 3. Headers básicos (sin contenido para GET)
        headers = {
            "Host": self.host,
            "x-amz-content-sha256": empty_hash,
            "x-amz-date": amz_date
        }

        # 4. Solicitud canónica y firma
        canonical_request = self._create_canonical_request(
            method="GET",
            path=f"/{encoded_path}",
            headers=headers,
            content_hash=empty_hash
        )
        signing_key = self._get_signing_key(date_stamp)
        signature = self._generate_signature(
            canonical_request=canonical_request,
            date_stamp=date_stamp,
            amz_date=amz_date,
            signing_key=signing_key
        )

        # 5. Construir headers finales
        signed_headers = ";".join(sorted([k.lower() for k in headers.keys()]))
        headers["Authorization"] = (
            f"AWS4-HMAC-SHA256 "
            f"Credential={self.access_key}/{self._credential_scope(date_stamp)}, "
            f"SignedHeaders={signed_headers}, "
            f"Signature={signature}"
        )

        try:
            response = requests.get(url, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error de conexión al descargar archivo: {str(e)}")
            raise StorageError("connection error with DO Spaces")

        if response.status_code in (403, 404):
            raise ImageNotFoundError(file_path)
        if not response.ok:
            logger.error(f"Error al descargar archivo: {response.status_code} - {response.text}")
            raise StorageError(f"DO Spaces responded {response.status_code}")

        return response.content, response.headers.get("Content-Type", "application/octet-stream")
