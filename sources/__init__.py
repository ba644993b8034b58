# Importing the package registers every built-in contact source
from . import csv_export, mailbox, network_graph  # noqa: F401
