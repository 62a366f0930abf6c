from sweetshop.ddd.commands import Command, Handler, Payload, Query, call_handler
from sweetshop.ddd.domain_module import DomainModule
from sweetshop.ddd.payloads import build_payload

__all__ = ["Command", "Query", "Payload", "Handler", "call_handler", "DomainModule", "build_payload"]
