from app.domain.bulk_import import Dataset
from app.importers.accounts import ExpensesImporter, LaborImporter
from app.importers.base import DatasetImporter, LocationLookup, RowRejected
from app.importers.harvest import PepperImporter, ProcessingImporter, RainfallImporter
from app.importers.movements import DispatchImporter, SalesImporter
from app.importers.stock import InventoryImporter, TransactionsImporter

_IMPORTERS: dict[Dataset, DatasetImporter] = {
    importer.dataset: importer
    for importer in (
        ProcessingImporter(),
        PepperImporter(),
        RainfallImporter(),
        DispatchImporter(),
        SalesImporter(),
        TransactionsImporter(),
        InventoryImporter(),
        LaborImporter(),
        ExpensesImporter(),
    )
}


def get_importer(dataset: Dataset) -> DatasetImporter:
    return _IMPORTERS[dataset]


__all__ = [
    "DatasetImporter",
    "DispatchImporter",
    "ExpensesImporter",
    "InventoryImporter",
    "LaborImporter",
    "LocationLookup",
    "PepperImporter",
    "ProcessingImporter",
    "RainfallImporter",
    "RowRejected",
    "SalesImporter",
    "TransactionsImporter",
    "get_importer",
]
