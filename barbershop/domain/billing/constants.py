"""ARCA (ex-AFIP) WSFE codes used by the billing module"""

VOUCHER_TYPES = {
    "FACTURA_A": 1,
    "NOTA_DEBITO_A": 2,
    "NOTA_CREDITO_A": 3,
    "FACTURA_B": 6,
    "NOTA_DEBITO_B": 7,
    "NOTA_CREDITO_B": 8,
    "FACTURA_C": 11,
    "NOTA_DEBITO_C": 12,
    "NOTA_CREDITO_C": 13,
}

VOUCHER_TYPE_NAMES = {
    1: "Factura A",
    2: "Nota de Débito A",
    3: "Nota de Crédito A",
    6: "Factura B",
    7: "Nota de Débito B",
    8: "Nota de Crédito B",
    11: "Factura C",
    12: "Nota de Débito C",
    13: "Nota de Crédito C",
}

CONCEPT = {
    "PRODUCTOS": 1,
    "SERVICIOS": 2,
    "PRODUCTOS_Y_SERVICIOS": 3,
}

DOC_TYPES = {
    "CUIT": 80,
    "CUIL": 86,
    "CDI": 87,
    "DNI": 96,
    "CONSUMIDOR_FINAL": 99,
}

IVA_TYPES = {
    "IVA_0": 3,
    "IVA_10_5": 4,
    "IVA_21": 5,
    "IVA_27": 6,
    "IVA_5": 8,
    "IVA_2_5": 9,
}

IVA_CONDITION = {
    "IVA_RESPONSABLE_INSCRIPTO": 1,
    "IVA_SUJETO_EXENTO": 4,
    "CONSUMIDOR_FINAL": 5,
    "RESPONSABLE_MONOTRIBUTO": 6,
    "SUJETO_NO_CATEGORIZADO": 7,
    "PROVEEDOR_DEL_EXTERIOR": 8,
    "CLIENTE_DEL_EXTERIOR": 9,
    "IVA_LIBERADO": 10,
    "IVA_NO_ALCANZADO": 15,
}

# Appointment prices already include 21% VAT
VAT_RATE = 0.21

DEFAULT_VOUCHER_TYPE = VOUCHER_TYPES["FACTURA_B"]
DEFAULT_DOC_TYPE = DOC_TYPES["CONSUMIDOR_FINAL"]
DEFAULT_IVA_CONDITION = IVA_CONDITION["CONSUMIDOR_FINAL"]

# FECompConsultar error code for an unknown voucher
VOUCHER_NOT_FOUND_CODE = 602


def voucher_type_name(voucher_type: int) -> str:
    return VOUCHER_TYPE_NAMES.get(voucher_type, f"Comprobante tipo {voucher_type}")
