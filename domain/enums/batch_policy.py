from enum import Enum


class BatchPolicy(str, Enum):
    """
    Qué ocurre con el resto del lote cuando un archivo falla.
    - PER_FILE: cada archivo es independiente; los ya guardados se quedan.
    - ATOMIC: un archivo rechazado hace fallar el lote entero antes de escribir nada.
    """

    PER_FILE = "per_file"
    ATOMIC = "atomic"
