# services/order_lifecycle.py
"""
Ciclo de vida do pedido
------------------------------------------------------------------------------
Tabela de status (ordem de avanço):

    pending -> preparing -> ready -> out_for_delivery -> delivered

- Todo pedido nasce `pending`; `delivered` é terminal.
- A troca de status no servidor é uma sobrescrita "cega" por padrão
  (PermissiveLifecycle): qualquer rótulo é aceito, inclusive desconhecido,
  e não há checagem de dono da loja. O painel do parceiro só oferece os
  próximos status (`next_statuses`).
- StrictLifecycle aceita apenas avanço dentro da tabela. É selecionado por
  ORDER_STATUS_POLICY=strict, sem mudar as rotas.
- Sem histórico de status e sem rollback; última escrita vence.
------------------------------------------------------------------------------
"""

import logging

log = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "preparing", "ready", "out_for_delivery", "delivered")
INITIAL_STATUS = ORDER_STATUSES[0]
TERMINAL_STATUS = ORDER_STATUSES[-1]

ORDER_STATUS_LABELS = {
    "pending": "Pendente",
    "preparing": "Preparando",
    "ready": "Pronto",
    "out_for_delivery": "Saiu para entrega",
    "delivered": "Entregue",
}


class InvalidTransition(ValueError):
    """Transição recusada pela política de status."""


def status_label(status):
    """Rótulo legível; status desconhecido volta como veio."""
    return ORDER_STATUS_LABELS.get(status, status)


def next_statuses(current):
    """Status posteriores a `current` (o que a UI do parceiro deve oferecer)."""
    if current not in ORDER_STATUSES:
        return ()
    return ORDER_STATUSES[ORDER_STATUSES.index(current) + 1:]


class PermissiveLifecycle:
    """Sobrescrita cega: aceita qualquer status."""
    name = "permissive"

    def check(self, current, new):
        return new


class StrictLifecycle:
    """Só permite avançar na tabela `ORDER_STATUSES`."""
    name = "strict"

    def check(self, current, new):
        if new not in ORDER_STATUSES:
            raise InvalidTransition(f"Status inválido: {new}")
        if new not in next_statuses(current):
            raise InvalidTransition(f"Transição não permitida: {current} -> {new}")
        return new


_POLICIES = {
    PermissiveLifecycle.name: PermissiveLifecycle,
    StrictLifecycle.name: StrictLifecycle,
}


def policy_from_name(name):
    """Instancia a política pelo nome (default: permissive)."""
    key = (name or PermissiveLifecycle.name).strip().lower()
    try:
        return _POLICIES[key]()
    except KeyError:
        raise RuntimeError(f"ORDER_STATUS_POLICY desconhecida: {name}")


def set_status(session, order_id, new_status, policy):
    """Aplica `new_status` ao pedido e confirma a transação.

    Pedido inexistente é um no-op bem-sucedido (update por filtro, sem linhas).
    Retorna o pedido atualizado ou None.

    Levanta:
        InvalidTransition: quando a política recusa a mudança.
    """
    from database.models import Order

    order = session.get(Order, order_id)
    if order is None:
        log.info("status de pedido inexistente ignorado: #%s", order_id)
        return None

    order.status = policy.check(order.status, new_status)
    session.commit()
    log.info("pedido #%s -> %s", order_id, order.status)
    return order
