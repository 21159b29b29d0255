# alembic revision: esquema inicial (clientes, catálogo, precios, repartos, pedidos, usuarios)
from alembic import op
import sqlalchemy as sa

revision = '20261017_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

tipo_precio = sa.Enum('FABRICA', 'MAYORISTA', 'MINORISTA', name='tipoprecio')
estado_pedido = sa.Enum('PENDIENTE', 'ENTREGADO', 'CANCELADO', name='estadopedido')
rol = sa.Enum('ADMIN', 'USUARIO', name='rol')


def upgrade():
    op.create_table(
        'clientes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.Column('direccion', sa.String(200), nullable=False),
        sa.Column('telefono', sa.String(30), nullable=False),
        sa.Column('email', sa.String(120), nullable=True),
        sa.Column('zona', sa.String(60), nullable=False),
        sa.Column('tipo_precio', tipo_precio, nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('creado_en', sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index('ix_clientes_id', 'clientes', ['id'])
    op.create_index('ix_clientes_zona', 'clientes', ['zona'])

    op.create_table(
        'categorias',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nombre', sa.String(100), nullable=False, unique=True),
        sa.Column('descripcion', sa.Text(), nullable=True),
    )
    op.create_index('ix_categorias_id', 'categorias', ['id'])

    op.create_table(
        'productos',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.Column('descripcion', sa.Text(), nullable=True),
        sa.Column('imagen', sa.String(500), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('categoria_id', sa.Integer(),
                  sa.ForeignKey('categorias.id', ondelete='RESTRICT'), nullable=False),
    )
    op.create_index('ix_productos_id', 'productos', ['id'])
    op.create_index('ix_productos_categoria_id', 'productos', ['categoria_id'])

    op.create_table(
        'precios',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('categoria_id', sa.Integer(),
                  sa.ForeignKey('categorias.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('tipo', tipo_precio, nullable=False),
        sa.Column('valor', sa.Numeric(10, 2), nullable=False),
        sa.Column('fecha_inicio', sa.DateTime(timezone=True), nullable=False),
        sa.Column('fecha_fin', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.CheckConstraint('valor > 0', name='ck_precio_valor_positive'),
    )
    op.create_index('ix_precios_id', 'precios', ['id'])
    op.create_index('ix_precios_categoria_tipo', 'precios', ['categoria_id', 'tipo'])
    # Un solo precio activo por (categoría, tipo)
    op.create_index(
        'uq_precios_activo_categoria_tipo', 'precios', ['categoria_id', 'tipo'],
        unique=True, postgresql_where=sa.text('activo'),
    )

    op.create_table(
        'repartos',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('fecha', sa.Date(), nullable=False),
        sa.Column('zona', sa.String(60), nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=False),
        sa.Column('observacion', sa.Text(), nullable=True),
        sa.UniqueConstraint('zona', 'fecha', name='uq_repartos_zona_fecha'),
    )
    op.create_index('ix_repartos_id', 'repartos', ['id'])
    op.create_index('ix_repartos_fecha', 'repartos', ['fecha'])

    op.create_table(
        'pedidos',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cliente_id', sa.Integer(),
                  sa.ForeignKey('clientes.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('reparto_id', sa.Integer(),
                  sa.ForeignKey('repartos.id', ondelete='SET NULL'), nullable=True),
        sa.Column('fecha', sa.DateTime(timezone=True), nullable=False),
        sa.Column('estado', estado_pedido, nullable=False),
        sa.Column('cobrado', sa.Boolean(), nullable=False),
        sa.Column('total', sa.Numeric(10, 2), nullable=False),
        sa.Column('observacion', sa.Text(), nullable=True),
        sa.CheckConstraint('total >= 0', name='ck_pedido_total_nonneg'),
    )
    op.create_index('ix_pedidos_id', 'pedidos', ['id'])
    op.create_index('ix_pedidos_reparto_id', 'pedidos', ['reparto_id'])
    op.create_index('ix_pedidos_estado_fecha', 'pedidos', ['estado', 'fecha'])
    op.create_index('ix_pedidos_cliente_fecha', 'pedidos', ['cliente_id', 'fecha'])

    op.create_table(
        'pedido_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pedido_id', sa.Integer(),
                  sa.ForeignKey('pedidos.id', ondelete='CASCADE'), nullable=False),
        sa.Column('producto_id', sa.Integer(),
                  sa.ForeignKey('productos.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('precio_id', sa.Integer(),
                  sa.ForeignKey('precios.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('cantidad', sa.Integer(), nullable=False),
        sa.Column('precio', sa.Numeric(10, 2), nullable=False),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False),
        sa.CheckConstraint('cantidad > 0', name='ck_item_cantidad_positive'),
        sa.CheckConstraint('precio > 0 AND subtotal > 0', name='ck_item_precios_positive'),
    )
    op.create_index('ix_pedido_items_id', 'pedido_items', ['id'])
    op.create_index('ix_pedido_items_pedido_id', 'pedido_items', ['pedido_id'])
    op.create_index('ix_pedido_items_producto_id', 'pedido_items', ['producto_id'])
    op.create_index('ix_pedido_items_precio_id', 'pedido_items', ['precio_id'])

    op.create_table(
        'usuarios',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nombre', sa.String(100), nullable=False),
        sa.Column('email', sa.String(120), nullable=False),
        sa.Column('password_hash', sa.String(128), nullable=False),
        sa.Column('rol', rol, nullable=False),
        sa.Column('cliente_id', sa.Integer(),
                  sa.ForeignKey('clientes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('creado_en', sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index('ix_usuarios_id', 'usuarios', ['id'])
    op.create_index('ix_usuarios_email', 'usuarios', ['email'], unique=True)


def downgrade():
    op.drop_table('usuarios')
    op.drop_table('pedido_items')
    op.drop_table('pedidos')
    op.drop_table('repartos')
    op.drop_table('precios')
    op.drop_table('productos')
    op.drop_table('categorias')
    op.drop_table('clientes')
    rol.drop(op.get_bind(), checkfirst=True)
    estado_pedido.drop(op.get_bind(), checkfirst=True)
    tipo_precio.drop(op.get_bind(), checkfirst=True)
