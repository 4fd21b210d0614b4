"""Notification dispatchers."""

from loan_pact.dispatch.base import Dispatcher
from loan_pact.dispatch.console import ConsoleDispatcher
from loan_pact.dispatch.jsonl import JsonLinesDispatcher
from loan_pact.dispatch.kafka import KafkaDispatcher

__all__ = ["ConsoleDispatcher", "Dispatcher", "JsonLinesDispatcher", "KafkaDispatcher"]
