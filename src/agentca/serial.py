import logging
import threading
from pathlib import Path

from .errors import SerialAllocationError
from .storage import atomic_write_text


logger = logging.getLogger(__name__)


class SerialAllocator:
    """
    Per-CA serial counter kept in an OpenSSL style `.srl` file: upper-case
    hex, an even number of digits, holding the next serial to hand out.

    The incremented value is persisted before a serial is returned. If the
    process dies between that write and the certificate being stored, the
    serial is lost for good rather than issued twice.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def initialize(self, first_serial: int = 1):
        if first_serial < 1:
            raise SerialAllocationError(f"Serials start at 1, not {first_serial}")

        with self._lock:
            if self._path.exists():
                raise SerialAllocationError(f"Serial file {self._path} already exists")
            self._write(first_serial)

    def peek(self) -> int:
        with self._lock:
            return self._read()

    def next_serial(self) -> int:
        with self._lock:
            serial = self._read()
            self._write(serial + 1)

        logger.debug("Allocated serial %d from %s", serial, self._path)
        return serial

    def _read(self) -> int:
        try:
            text = self._path.read_text().strip()
        except OSError as e:
            raise SerialAllocationError(f"Cannot read serial file {self._path}: {e}") from e

        try:
            value = int(text, 16)
        except ValueError as e:
            raise SerialAllocationError(f"Corrupt serial file {self._path}: {text!r}") from e

        if value < 1:
            raise SerialAllocationError(f"Corrupt serial file {self._path}: {text!r}")
        return value

    def _write(self, value: int):
        digits = f"{value:X}"
        if len(digits) % 2:
            digits = "0" + digits

        try:
            atomic_write_text(self._path, digits + "\n")
        except OSError as e:
            raise SerialAllocationError(f"Cannot persist serial to {self._path}: {e}") from e
