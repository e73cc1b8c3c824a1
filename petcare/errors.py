from enum import Enum
from fastapi import HTTPException


class AdmissionError(str, Enum):
    """Motivo por el que no se admite una reserva."""
    service_unavailable = "service_unavailable"
    pet_not_found = "pet_not_found"
    invalid_time = "invalid_time"
    slot_conflict = "slot_conflict"

    @property
    def status_code(self) -> int:
        if self in (AdmissionError.service_unavailable, AdmissionError.pet_not_found):
            return 404
        return 400

    @property
    def detail(self) -> str:
        return _DETAILS[self]

    def to_http(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.detail)


_DETAILS = {
    AdmissionError.service_unavailable: "Servicio no encontrado o no disponible",
    AdmissionError.pet_not_found: "Mascota no encontrada o sin acceso",
    AdmissionError.invalid_time: "La fecha de la reserva debe ser futura",
    AdmissionError.slot_conflict: "La mascota ya tiene una reserva que se solapa con ese horario",
}


class StoreError(Exception):
    """Fallo de la capa de persistencia (timeout, conexión...)."""
