from sweetshop.events.event_bus_module import EventBusModule

__all__ = ["EventBusModule"]
