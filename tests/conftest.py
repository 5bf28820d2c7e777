import numpy as np
import pandas as pd
import pytest

from ground_cover.cste import ClassInfo, CSVKeys

N_PHOTOS = 10
PIXELS_PER_PHOTO = 24
PIXELS_PER_SAMPLE = 30


def make_pixel_table(seed: int = 0) -> pd.DataFrame:
    """Synthetic pixel-aggregate table whose composition follows the colour predictors."""
    rng = np.random.default_rng(seed)
    n = N_PHOTOS * PIXELS_PER_PHOTO

    green = rng.uniform(0, 1, n)
    red = rng.uniform(0, 1, n)
    blue = rng.uniform(0, 1, n)
    exg = 2 * green - red - blue

    logits = np.column_stack([3 * exg, 2 * (red + blue) - 1, 2 * red - 2 * green])
    proba = np.exp(logits - logits.max(axis=1, keepdims=True))
    proba /= proba.sum(axis=1, keepdims=True)
    counts = np.array([rng.multinomial(PIXELS_PER_SAMPLE, p) for p in proba])

    df = pd.DataFrame({
        CSVKeys.SAMPLE_ID: [f"px{i:04d}" for i in range(n)],
        CSVKeys.GROUP_ID: np.repeat(np.arange(N_PHOTOS), PIXELS_PER_PHOTO),
        CSVKeys.ORDER: np.tile(np.arange(PIXELS_PER_PHOTO), N_PHOTOS),
        "red": red,
        "green": green,
        "blue": blue,
        "exg": exg,
        "altitude_m": rng.uniform(10, 30, n),
    })
    for j, cls in enumerate(ClassInfo.CLASS_NAMES):
        df[cls] = counts[:, j]
    return df


@pytest.fixture
def pixel_table() -> pd.DataFrame:
    return make_pixel_table()


@pytest.fixture
def pixel_csv(tmp_path, pixel_table) -> str:
    path = tmp_path / "pixel_table.csv"
    pixel_table.to_csv(path, index=False)
    return str(path)


@pytest.fixture
def observed_single():
    return [{"grass": 0.6, "sand": 0.3, "dead": 0.1}]


@pytest.fixture
def predicted_single():
    return [{"grass": 0.5, "sand": 0.3, "dead": 0.2}]
