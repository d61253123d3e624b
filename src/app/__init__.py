"""App: orquestração, casos de uso e infraestrutura.

Subpastas:
- bootstrap/: composition root (factories, inicialização, wiring)
- coordinators/: ponte entre a fila de jobs e os use cases
- use_cases/: casos de uso (evento Sellsy -> fatura)
- services/: transformações puras (devis -> fatura)
- domain/: modelos do evento e da fatura
- infra/: fila durável, worker e stores de dedupe
- protocols/: contratos/interfaces
- observability/: correlation/job ids e métricas via logs

Processos:
- app.app: ingress HTTP (FastAPI)
- app.worker: consumidor da fila
"""
