# app/db/ragic.py
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

import httpx

from app.core.config import settings
from app.core.exceptions import BackendRejected, BackendUnavailable
from app.models.ragic_fields import subtable_key

logger = logging.getLogger(__name__)

# Parametros que Ragic espera en todas las llamadas del API
BASE_PARAMS = {"v": "3", "api": "", "naming": "EID"}
# doFormula recalcula % llenado y totales; doLinkLoad refresca los campos
# que reflejan una fila enlazada (ej. el nombre del barco)
WRITE_PARAMS = {"doLinkLoad": "true", "doFormula": "true"}

# Valores con los que /AUTH indica credenciales invalidas
AUTH_FAILURE_VALUES = (-1, "-1")


@dataclass(frozen=True)
class RowFilter:
    field_id: str
    value: str
    operator: str = "eq"

    def to_param(self) -> str:
        return f"{self.field_id},{self.operator},{self.value}"


@dataclass(frozen=True)
class RowSort:
    field_id: str
    descending: bool = False


class RagicGateway:
    """
    Una llamada HTTP a Ragic por operacion. Sin reintentos: si hace falta
    reintentar, lo decide quien llama.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def origin(self) -> str:
        parts = urlsplit(self.base_url)
        return f"{parts.scheme}://{parts.netloc}"

    async def close(self):
        await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.strip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self._url(path)
        query = {**BASE_PARAMS, **(params or {})}
        headers = {"Authorization": f"Basic {self._api_key}"}

        logger.debug("Ragic %s %s params=%s", method, url, query)
        try:
            response = await self._client.request(
                method, url, params=query, headers=headers, json=body
            )
        except httpx.HTTPError as e:
            logger.error("Ragic %s %s fallo de red: %s", method, url, e)
            raise BackendUnavailable(f"Ragic request failed: {e}") from e

        logger.debug("Ragic %s %s -> %s", method, url, response.status_code)

        if 400 <= response.status_code < 500:
            raise BackendRejected(response.status_code, response.text)
        if not response.is_success:
            raise BackendUnavailable(
                f"Ragic request failed: {response.status_code} {response.reason_phrase}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendUnavailable("Ragic returned a non-JSON body") from e

    async def fetch_rows(
        self,
        sheet_path: str,
        filter: Optional[RowFilter] = None,
        sort: Optional[RowSort] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Lee filas de una hoja. Devuelve el JSON crudo: un dict indexado por
        ID de fila (incluye las claves de metadatos que Ragic agrega).
        """
        params: Dict[str, str] = {}
        if filter is not None:
            params["where"] = filter.to_param()
        if sort is not None:
            params["sortField"] = sort.field_id
            if sort.descending:
                params["desc"] = "1"
        if limit is not None:
            params["limit"] = str(limit)

        data = await self._request("GET", sheet_path, params=params)
        if not isinstance(data, dict):
            logger.warning("Ragic %s devolvio %s en vez de un objeto", sheet_path, type(data).__name__)
            return {}
        return data

    async def write_row(
        self,
        sheet_path: str,
        row_id: Optional[str],
        fields: Mapping[str, str],
        subtables: Optional[Mapping[str, Mapping[str, Mapping[str, str]]]] = None,
    ) -> Any:
        """
        Crea (row_id None) o actualiza en sitio (row_id presente) una fila.
        `subtables`: {id_subtabla: {clave_fila: {campo: valor}}}, con claves
        "-1", "-2"... para filas nuevas y el ID positivo para actualizar.
        """
        body: Dict[str, Any] = dict(fields)
        for subtable_id, rows in (subtables or {}).items():
            body[subtable_key(subtable_id)] = {key: dict(row) for key, row in rows.items()}

        path = f"{sheet_path}/{row_id}" if row_id else sheet_path
        return await self._request("POST", path, params=WRITE_PARAMS, body=body)

    async def password_auth(self, email: str, password: str) -> Optional[str]:
        """
        Valida credenciales contra /AUTH de Ragic.
        Devuelve el session id, o None si Ragic las rechaza.
        """
        url = f"{self.origin}/AUTH"
        params = {
            "u": email,
            "p": password,
            "login_type": "sessionId",
            "json": "1",
            "api": "",
        }
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"Ragic auth failed: {e}") from e

        if not response.is_success:
            logger.info("Ragic AUTH respondio %s para %s", response.status_code, email)
            return None
        return parse_session_id(response.text)


def parse_session_id(raw_text: str) -> Optional[str]:
    """Interpreta la respuesta de /AUTH. -1 en cualquiera de sus formas = fallo."""
    try:
        data = json.loads(raw_text)
    except ValueError:
        data = raw_text.strip()

    # Solo un string suelto o "sid" dentro de un objeto; un numero suelto no es sesion
    if isinstance(data, dict):
        if data.get("sessionId") in AUTH_FAILURE_VALUES:
            return None
        sid = data.get("sid")
    elif isinstance(data, str):
        sid = data
    else:
        sid = None

    if sid is None or isinstance(sid, (bool, dict, list)) or str(sid).strip() in ("", "-1"):
        return None
    return str(sid)


def create_gateway(client: Optional[httpx.AsyncClient] = None) -> RagicGateway:
    logger.info("Iniciando cliente Ragic para %s", settings.RAGIC_BASE_URL)
    if not settings.RAGIC_API_KEY:
        logger.warning("RAGIC_API_KEY no esta definido")
    return RagicGateway(
        settings.RAGIC_BASE_URL,
        settings.RAGIC_API_KEY,
        client=client,
        timeout=settings.RAGIC_TIMEOUT_SECONDS,
    )
