# app/core/exceptions.py


class FlgoError(Exception):
    """Base de todos los errores del nucleo FLGO."""


class ValidationError(FlgoError):
    """Falta un dato obligatorio. El mensaje se muestra tal cual al usuario."""


class Unauthorized(FlgoError):
    def __init__(self, message: str = "Unauthorized."):
        super().__init__(message)


class BackendUnavailable(FlgoError):
    """Fallo de red, timeout o 5xx de Ragic."""


class BackendRejected(FlgoError):
    """
    Ragic respondio 4xx.
    `detail` guarda el cuerpo crudo solo para logs: su formato no es estable
    y no se usa para decidir nada.
    """

    def __init__(self, status_code: int, detail: str = ""):
        super().__init__(f"Ragic rejected the request ({status_code})")
        self.status_code = status_code
        self.detail = detail
