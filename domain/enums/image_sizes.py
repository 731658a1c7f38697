from enum import Enum

class ImageSize(Enum):
    """
    Tamaños de las variantes responsivas de una imagen de anuncio.
    - Miniatura para listados y tarjetas.
    - Mediana para la vista de detalle en móvil.
    - Grande para la galería en escritorio.
    """

    # Miniatura (tarjetas del listado)
    THUMB = (400, 300)  # 4:3

    # Mediana (detalle en móvil)
    MEDIUM = (800, 600)  # 4:3

    # Grande (galería)
    LARGE = (1200, 800)  # 3:2

    @property
    def width(self):
        """Devuelve el ancho máximo de la variante."""
        return self.value[0]

    @property
    def height(self):
        """Devuelve el alto máximo de la variante."""
        return self.value[1]

    @property
    def suffix(self):
        """Sufijo usado para nombrar la variante."""
        return self.name.lower()
