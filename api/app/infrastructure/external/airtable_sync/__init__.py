"""
Motor de sincronización bidireccional: listings base local <-> Airtable.

Las pasadas (pull / push) se invocan explícitamente desde el API, un CLI
o un scheduler; el paquete no se engancha a eventos de guardado.

Objetivos de diseño:
- Idempotencia: se puede ejecutar N veces sin duplicar listings ni adjuntos.
- Tolerancia a drift de esquema: nombres de fields resueltos con sinónimos.
- Un valor o adjunto inválido nunca aborta el registro ni la pasada.
- Control total: mapeo/coerción/restricciones declarados en código.
"""
