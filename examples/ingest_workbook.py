"""Example: Import a shift workbook and query the stored records

This example demonstrates the main flow of turnos_core:
1. Check and read an uploaded workbook (.xlsx)
2. Normalize, validate and bulk-store its rows (lenient mode)
3. Read records back and compute per-shift counts
4. Write one record through the strict single-record path

Prerequisites:
- A workbook with columns fecha | turno | vacaciones | notas (personaId optional)
- Optionally set TURNOS_STORE_PATH and MAX_UPLOAD_MB environment variables
"""

from pathlib import Path

from turnos_core import (
    JsonFileRepository,
    SingleRecordService,
    TurnosConfig,
    ValidationError,
    ingest_file,
)

# Configuration comes from the environment, with defaults
config = TurnosConfig.from_env()
config.ensure_dirs()

workbook = Path("uploads/turnos_septiembre.xlsx")  # MODIFY AS NEEDED

repository = JsonFileRepository(config.store_path)
service = SingleRecordService(repository)

# Bulk import: invalid rows are skipped and reported, valid rows are stored
print(f"Importing {workbook} into {config.store_path}...")
report = ingest_file(workbook, repository, config)
print(f"Inserted: {report.inserted}, updated: {report.updated}, skipped: {report.skipped}")
for warning in report.warnings:
    print(f"  ! {warning}")

# Read back a month
records = service.get_by_range("2025-09-01", "2025-09-30")
print(f"\n{len(records)} records in September")
for record in records[:5]:
    label = record.shift.value if record.shift else ("vacaciones" if record.is_vacation else "-")
    print(f"  {record.date}: {label} {record.notes}")

# Per-shift counts
stats = service.get_stats("2025-09-01", "2025-09-30")
print(f"\nStats: {stats.to_dict()}")

# Single writes are strict: shift + vacation is rejected
try:
    service.upsert_one({"fecha": "2025-09-03", "turno": "mañana", "vacaciones": "sí"})
except ValidationError as ex:
    print(f"\nRejected as expected: {ex}")
