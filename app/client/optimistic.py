"""
Colección local con mutaciones optimistas.

El cambio se aplica primero en memoria y luego se ejecuta la escritura remota.
Si la escritura falla se restaura el estado previo y se lanza MutationError.
No hay reintentos ni serialización de mutaciones concurrentes: dos mutaciones
en vuelo pueden completarse en cualquier orden.
"""
import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
ErrorHandler = Callable[["MutationError"], None]
Listener = Callable[[str, Optional[Record]], None]

TEMP_ID_PREFIX = "temp-"


class MutationError(Exception):
    """Fallo remoto tras el cual el estado local ya fue revertido."""

    def __init__(self, action: str, message: str, cause: Exception):
        super().__init__(message)
        self.action = action
        self.message = message
        self.cause = cause


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_temp_id(record_id: Any) -> bool:
    return isinstance(record_id, str) and record_id.startswith(TEMP_ID_PREFIX)


class OptimisticCollection:
    """
    Lista ordenada de registros (dicts con clave ``id``), los más recientes primero.

    Args:
        name: nombre usado en logs y mensajes ("clienti", "fatture")
        on_error: callback de notificación, llamado una vez por cada fallo
    """

    def __init__(self, name: str = "records", on_error: Optional[ErrorHandler] = None):
        self.name = name
        self.on_error = on_error
        self._records: List[Record] = []
        self._listeners: List[Listener] = []

    @property
    def items(self) -> List[Record]:
        return list(self._records)

    def __len__(self):
        return len(self._records)

    def get(self, record_id: Any) -> Optional[Record]:
        for record in self._records:
            if record["id"] == record_id:
                return record
        return None

    def replace_all(self, records: List[Record]) -> None:
        self._records = [dict(r) for r in records]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registrar un listener llamado tras cada mutación confirmada. Devuelve la función para darse de baja."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _position(self, record_id: Any) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record["id"] == record_id:
                return index
        return None

    def _index_of(self, record_id: Any) -> int:
        index = self._position(record_id)
        if index is None:
            raise KeyError(record_id)
        return index

    def _notify(self, action: str, record: Optional[Record]) -> None:
        for listener in list(self._listeners):
            listener(action, record)

    def _fail(self, action: str, message: str, cause: Exception) -> MutationError:
        logger.warning(f"{self.name}: {action} failed, local state restored: {cause}")
        error = MutationError(action, message, cause)
        if self.on_error:
            self.on_error(error)
        return error

    async def create(self, draft: Record, remote: Callable[[Record], Awaitable[Record]]) -> Record:
        """
        Inserta al principio un registro temporal y lo sustituye, en la misma
        posición, por el registro devuelto por el servidor.
        """
        temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"
        now = _now_iso()
        optimistic = {**draft, "id": temp_id, "created_at": now, "updated_at": now}
        self._records.insert(0, optimistic)

        try:
            saved = await remote(draft)
        except Exception as e:
            self._records = [r for r in self._records if r["id"] != temp_id]
            raise self._fail("create", f"Impossibile creare {self.name}", e) from e

        index = self._position(temp_id)
        if index is None:
            # la colección fue recargada mientras la escritura estaba en vuelo
            self._records.insert(0, saved)
        else:
            self._records[index] = saved

        self._notify("create", saved)
        return saved

    async def update(
        self,
        record_id: Any,
        patch: Record,
        remote: Callable[[Any, Record], Awaitable[Optional[Record]]]
    ) -> Record:
        """Fusiona el patch en el registro; si la escritura falla se restaura toda la colección."""
        index = self._index_of(record_id)
        snapshot = copy.deepcopy(self._records)

        merged = {**self._records[index], **patch, "updated_at": _now_iso()}
        self._records[index] = merged

        try:
            saved = await remote(record_id, patch)
        except Exception as e:
            self._records = snapshot
            raise self._fail("update", f"Impossibile aggiornare {self.name}", e) from e

        if saved:
            index = self._position(record_id)
            if index is not None:
                self._records[index] = saved
            merged = saved

        self._notify("update", merged)
        return merged

    async def delete(self, record_id: Any, remote: Callable[[Any], Awaitable[Any]]) -> None:
        """Elimina el registro localmente; si la escritura falla se restaura la colección."""
        self._index_of(record_id)
        snapshot = copy.deepcopy(self._records)
        self._records = [r for r in self._records if r["id"] != record_id]

        try:
            await remote(record_id)
        except Exception as e:
            self._records = snapshot
            raise self._fail("delete", f"Impossibile eliminare {self.name}", e) from e

        self._notify("delete", None)
