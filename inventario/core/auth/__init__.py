# inventario/core/auth/__init__.py
"""
Identidad del llamador.

La emisión de tokens y el manejo de credenciales viven en el servicio de
identidad; aquí solo se valida el token y se extrae ``{id, rol, bodegaId}``.
"""
