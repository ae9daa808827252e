"""
Pipeline validating gtfs-rt resources of the catalog. Candidate datasets are
dispatched on an interval, then each dataset job snapshots its gtfs-rt feeds,
runs the gtfs-realtime-validator against the latest GTFS snapshot and stores
the resulting reports and audit logs.
"""
