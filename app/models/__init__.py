from .precio import Precio, TipoPrecio
from .cliente import Cliente
from .categoria import Categoria, Producto
from .reparto import Reparto
from .pedido import Pedido, PedidoItem, EstadoPedido
from .usuario import Usuario, Rol

__all__ = [
    "Precio", "TipoPrecio",
    "Cliente",
    "Categoria", "Producto",
    "Reparto",
    "Pedido", "PedidoItem", "EstadoPedido",
    "Usuario", "Rol",
]
