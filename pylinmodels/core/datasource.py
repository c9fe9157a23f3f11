"""
Universal DataSource for pylinmodels.

DataSource is the "I have a table of observations" abstraction. It holds
named columns of equal length and does not know whether a column will be
used as a response, a covariate, a factor or a grouping variable. Label
columns are kept as given; only the model frame decides how to encode them.

Usage:
    ds = DataSource.from_arrays(pitch=[233, 204], sex=['female', 'female'])
    ds = DataSource.from_dataframe(df)
    ds = DataSource.from_file("politeness_data.csv")

    ds.keys()      # frozenset({'pitch', 'sex'})
    ds['pitch']    # array([233, 204])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import ArrayLike

from pylinmodels.core.exceptions import ValidationError, DimensionError

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class DataSource:
    """
    Named, equal-length columns. Domain-agnostic.

    Construct via factory classmethods, not directly.
    """
    _data: dict[str, np.ndarray]
    _metadata: dict[str, Any] = field(default_factory=dict)

    def keys(self) -> frozenset[str]:
        """Return the names of all available columns."""
        return frozenset(self._data.keys())

    @property
    def columns(self) -> list[str]:
        """Column names in insertion order."""
        return list(self._data.keys())

    def __getitem__(self, key: str) -> np.ndarray:
        """
        Access a named column.

        Raises:
            KeyError: If key not found, listing the available columns
        """
        if key not in self._data:
            raise KeyError(
                f"DataSource has no column '{key}'. Available: {sorted(self._data)}"
            )
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    @property
    def n_observations(self) -> int:
        """Number of rows."""
        return self._metadata.get('n_observations', 0)

    @property
    def metadata(self) -> dict[str, Any]:
        """Source description, column order and declared factor levels."""
        return self._metadata.copy()

    def categories(self, key: str) -> list[Any] | None:
        """Declared level order for a categorical column, if the source had one."""
        return self._metadata.get('categories', {}).get(key)

    def select(
        self,
        columns: list[str],
        rows: np.ndarray | None = None,
    ) -> DataSource:
        """
        Subset to the named columns and, optionally, a boolean row mask.

        Declared categories of the kept columns carry over.
        """
        storage = {name: self[name] for name in columns}
        if rows is not None:
            storage = {name: arr[rows] for name, arr in storage.items()}
        n_obs = next(iter(storage.values())).shape[0] if storage else 0

        metadata = self.metadata
        metadata['n_observations'] = n_obs
        metadata['columns'] = list(storage)
        metadata['categories'] = {
            k: v for k, v in metadata.get('categories', {}).items() if k in storage
        }
        return DataSource(_data=storage, _metadata=metadata)

    # === Factory Methods ===

    @classmethod
    def from_arrays(cls, **columns: ArrayLike) -> DataSource:
        """Construct from named 1-D array-likes."""
        if not columns:
            raise ValidationError("DataSource.from_arrays: no columns given")

        storage: dict[str, np.ndarray] = {}
        for name, values in columns.items():
            arr = np.asarray(values)
            if arr.ndim != 1:
                raise DimensionError(
                    f"{name}: expected 1D column, got {arr.ndim}D with shape {arr.shape}"
                )
            storage[name] = arr

        lengths = {name: arr.shape[0] for name, arr in storage.items()}
        if len(set(lengths.values())) > 1:
            details = ", ".join(f"{k}={v}" for k, v in lengths.items())
            raise DimensionError(f"Inconsistent column lengths: {details}")

        return cls(
            _data=storage,
            _metadata={
                'n_observations': next(iter(lengths.values())),
                'source': 'arrays',
                'columns': list(storage),
            },
        )

    @classmethod
    def from_dataframe(cls, df: 'pd.DataFrame', *, source_path: str | None = None) -> DataSource:
        """
        Construct from a pandas DataFrame.

        Categorical columns keep their declared level order, which the
        model frame uses instead of sorted order.
        """
        import pandas as pd

        storage: dict[str, np.ndarray] = {}
        categories: dict[str, list[Any]] = {}

        for col in df.columns:
            series = df[col]
            if isinstance(series.dtype, pd.CategoricalDtype):
                categories[str(col)] = list(series.cat.categories)
                storage[str(col)] = series.astype(object).to_numpy()
            else:
                storage[str(col)] = series.to_numpy()

        metadata: dict[str, Any] = {
            'n_observations': len(df),
            'source': 'dataframe',
            'columns': list(storage),
            'categories': categories,
        }
        if source_path:
            metadata['source_path'] = source_path

        return cls(_data=storage, _metadata=metadata)

    @classmethod
    def from_file(cls, path: str | Path, *, columns: list[str] | None = None) -> DataSource:
        """Construct from a local CSV or TSV file."""
        import pandas as pd

        path = Path(path)
        suffix = path.suffix.lower()

        if suffix == '.csv':
            df = pd.read_csv(path, usecols=columns)
        elif suffix == '.tsv':
            df = pd.read_csv(path, sep='\t', usecols=columns)
        else:
            raise ValidationError(f"Unknown file format: {suffix}")
        return cls.from_dataframe(df, source_path=str(path))

    @classmethod
    def build(cls, data: Any) -> DataSource:
        """
        Dispatch to the appropriate from_* method.

        Accepts an existing DataSource, a pandas DataFrame, a path, or a
        mapping of column name to values.
        """
        if isinstance(data, DataSource):
            return data
        if isinstance(data, (str, Path)):
            return cls.from_file(data)
        if hasattr(data, 'columns') and hasattr(data, 'iloc'):
            return cls.from_dataframe(data)
        if isinstance(data, dict):
            return cls.from_arrays(**data)
        raise ValidationError(
            f"Cannot build a DataSource from {type(data).__name__}; "
            f"expected DataFrame, dict of columns, path or DataSource"
        )
