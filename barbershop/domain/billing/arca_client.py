"""
ARCA (ex-AFIP) electronic billing client
Talks to the WSFE web service through the AfipSDK REST API
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

import httpx

from ... import config
from .constants import VOUCHER_NOT_FOUND_CODE

logger = logging.getLogger(__name__)

WSID = "wsfe"


class ArcaError(Exception):
    """Raised when ARCA or the AfipSDK API rejects a request"""


def format_afip_date(value: Any) -> str:
    """yyyymmdd -> yyyy-mm-dd, anything else unchanged"""
    text = str(value or "")
    if len(text) == 8 and text.isdigit():
        return f"{text[:4]}-{text[4:6]}-{text[6:]}"
    return text


def _as_list(value: Any) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _errors(result: dict) -> list[dict]:
    errors = result.get("Errors") or {}
    return _as_list(errors.get("Err"))


class ArcaClient:
    """
    Minimal WSFE client. One instance caches the access ticket (token/sign)
    until it expires.
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        cuit: Optional[int] = None,
        environment: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.transport = transport
        self.base_url = (base_url or config.AFIP_API_URL).rstrip("/")
        self.access_token = access_token if access_token is not None else config.AFIP_ACCESS_TOKEN
        self.cuit = cuit or config.AFIP_CUIT
        self.environment = environment or config.AFIP_ENVIRONMENT
        self.timeout = timeout or config.AFIP_TIMEOUT_SECONDS
        self._auth: Optional[dict] = None
        self._auth_expires_at: Optional[datetime] = None

    # ========================================================================
    # TRANSPORT
    # ========================================================================

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as http_client:
                response = await http_client.post(
                    f"{self.base_url}{path}",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ ARCA request to {path} failed: {str(e)}")
            raise ArcaError(f"No se pudo conectar con ARCA: {str(e)}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
                message = body.get("message") or body.get("error") or response.text
            except (ValueError, AttributeError):
                message = response.text
            logger.error(f"❌ ARCA {path} returned {response.status_code}: {message}")
            raise ArcaError(f"ARCA respondió {response.status_code}: {message}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"❌ ARCA {path} returned a non-JSON body: {response.text[:200]}")
            raise ArcaError("ARCA devolvió una respuesta inválida") from e
        if not isinstance(data, dict):
            raise ArcaError("ARCA devolvió una respuesta inválida")
        return data

    def _credentials(self) -> dict:
        if self.environment != "prod":
            return {}
        if not config.AFIP_CERT_PATH or not config.AFIP_KEY_PATH:
            raise ArcaError("AFIP_CERT_PATH y AFIP_KEY_PATH son requeridos en producción")
        try:
            return {
                "cert": Path(config.AFIP_CERT_PATH).read_text(encoding="utf-8"),
                "key": Path(config.AFIP_KEY_PATH).read_text(encoding="utf-8"),
            }
        except OSError as e:
            logger.error(f"❌ Could not read ARCA certificate or key: {str(e)}")
            raise ArcaError(f"No se pudo leer el certificado de ARCA: {str(e)}") from e

    async def get_auth(self) -> dict:
        """Token and sign for WSFE, cached until expiration"""
        if self._auth and self._auth_expires_at and datetime.now() < self._auth_expires_at:
            return self._auth

        payload = {"environment": self.environment, "tax_id": self.cuit, "wsid": WSID}
        payload.update(self._credentials())
        data = await self._post("/afip/auth", payload)
        if not data.get("token") or not data.get("sign"):
            raise ArcaError("ARCA no devolvió un ticket de acceso válido")

        self._auth = {"Token": data["token"], "Sign": data["sign"], "Cuit": self.cuit}
        # Tickets last 12 hours; refresh a bit earlier
        self._auth_expires_at = datetime.now() + timedelta(hours=11)
        logger.info(f"🔑 ARCA access ticket obtained ({self.environment})")
        return self._auth

    async def request(self, method: str, params: Optional[dict] = None, with_auth: bool = True) -> dict:
        """Call a WSFE method and return its `<method>Result` body"""
        params = dict(params or {})
        if with_auth:
            params["Auth"] = await self.get_auth()

        data = await self._post(
            "/afip/requests",
            {"environment": self.environment, "method": method, "wsid": WSID, "params": params},
        )
        return data.get(f"{method}Result", data)

    # ========================================================================
    # VOUCHERS
    # ========================================================================

    async def get_last_voucher(self, sales_point: int, voucher_type: int) -> int:
        result = await self.request("FECompUltimoAutorizado", {"PtoVta": sales_point, "CbteTipo": voucher_type})
        errors = _errors(result)
        if errors:
            raise ArcaError(f"({errors[0].get('Code')}) {errors[0].get('Msg')}")
        return int(result.get("CbteNro", 0))

    async def create_voucher(self, data: dict) -> dict:
        """
        Request a CAE for a fully numbered voucher

        Returns:
            dict: {"CAE", "CAEFchVto"} with the expiration as yyyy-mm-dd
        """
        detail = {k: v for k, v in data.items() if k not in ("CantReg", "PtoVta", "CbteTipo")}
        if "Iva" in detail:
            detail["Iva"] = {"AlicIva": detail["Iva"]}

        params = {
            "FeCAEReq": {
                "FeCabReq": {"CantReg": data.get("CantReg", 1), "PtoVta": data["PtoVta"], "CbteTipo": data["CbteTipo"]},
                "FeDetReq": {"FECAEDetRequest": detail},
            }
        }
        result = await self.request("FECAESolicitar", params)

        errors = _errors(result)
        if errors:
            raise ArcaError(f"({errors[0].get('Code')}) {errors[0].get('Msg')}")

        responses = _as_list((result.get("FeDetResp") or {}).get("FECAEDetResponse"))
        if not responses:
            raise ArcaError("ARCA no devolvió el detalle del comprobante")
        detail_response = responses[0]

        if detail_response.get("Resultado") == "R" or not detail_response.get("CAE"):
            observations = _as_list((detail_response.get("Observaciones") or {}).get("Obs"))
            message = observations[0].get("Msg") if observations else "Comprobante rechazado"
            raise ArcaError(message)

        return {
            "CAE": str(detail_response["CAE"]),
            "CAEFchVto": format_afip_date(detail_response.get("CAEFchVto")),
        }

    async def create_next_voucher(self, data: dict) -> dict:
        """Number the voucher after the last authorized one and request its CAE"""
        last = await self.get_last_voucher(data["PtoVta"], data["CbteTipo"])
        voucher_number = last + 1
        numbered = dict(data, CbteDesde=voucher_number, CbteHasta=voucher_number)
        result = await self.create_voucher(numbered)
        result["voucher_number"] = voucher_number
        logger.info(f"🧾 ARCA voucher {data['PtoVta']}-{voucher_number} authorized, CAE {result['CAE']}")
        return result

    async def get_voucher_info(self, number: int, sales_point: int, voucher_type: int) -> Optional[dict]:
        """Voucher data as stored by ARCA, None when it does not exist"""
        result = await self.request(
            "FECompConsultar",
            {"FeCompConsReq": {"CbteNro": number, "PtoVta": sales_point, "CbteTipo": voucher_type}},
        )
        errors = _errors(result)
        if errors:
            if int(errors[0].get("Code", 0)) == VOUCHER_NOT_FOUND_CODE:
                return None
            raise ArcaError(f"({errors[0].get('Code')}) {errors[0].get('Msg')}")
        return result.get("ResultGet")

    # ========================================================================
    # CATALOGS
    # ========================================================================

    async def _catalog(self, method: str, item_key: str) -> list:
        result = await self.request(method)
        errors = _errors(result)
        if errors:
            raise ArcaError(f"({errors[0].get('Code')}) {errors[0].get('Msg')}")
        return _as_list((result.get("ResultGet") or {}).get(item_key))

    async def get_voucher_types(self) -> list:
        return await self._catalog("FEParamGetTiposCbte", "CbteTipo")

    async def get_document_types(self) -> list:
        return await self._catalog("FEParamGetTiposDoc", "DocTipo")

    async def get_aliquot_types(self) -> list:
        return await self._catalog("FEParamGetTiposIva", "IvaTipo")

    async def get_sales_points(self) -> list:
        return await self._catalog("FEParamGetPtosVenta", "PtoVenta")

    async def get_server_status(self) -> dict:
        """AppServer / DbServer / AuthServer status, no ticket needed"""
        return await self.request("FEDummy", with_auth=False)
