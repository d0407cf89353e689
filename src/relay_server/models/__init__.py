"""Domain models shared across services and resources."""

from relay_server.models.command import PendingCommand as PendingCommand
from relay_server.models.device import Device as Device
from relay_server.models.message import MessageRecord as MessageRecord
from relay_server.models.session import OperatorSession as OperatorSession
