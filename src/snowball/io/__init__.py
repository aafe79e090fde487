"""Input/Output operations for snowball."""

from snowball.io.forcing import load_forcing_csv, create_forcing_function
from snowball.io.csv_writer import write_csv, write_profile_csv
from snowball.io.netcdf_writer import write_netcdf

__all__ = [
    "load_forcing_csv",
    "create_forcing_function",
    "write_csv",
    "write_profile_csv",
    "write_netcdf",
]
