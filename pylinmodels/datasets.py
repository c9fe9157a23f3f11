"""
Reference datasets for examples and validation.

The two six-observation voice pitch tables are exact copies of the data
in Winter (2013), "Linear models and linear mixed effects models in R
with linguistic applications", arXiv:1308.5499.
"""

import numpy as np
import pandas as pd

_PITCH_BY_SEX = {
    'sex': ['female', 'female', 'female', 'male', 'male', 'male'],
    'pitch': [233.0, 204.0, 242.0, 130.0, 112.0, 142.0],
}

_PITCH_BY_AGE = {
    'age': [14.0, 23.0, 35.0, 48.0, 52.0, 67.0],
    'pitch': [252.0, 244.0, 240.0, 233.0, 212.0, 204.0],
}


def pitch_by_sex() -> pd.DataFrame:
    """Voice pitch (Hz) of three female and three male speakers.

    R: lm(pitch ~ sex) gives (Intercept) 226.33, sexmale -98.33.
    """
    return pd.DataFrame(_PITCH_BY_SEX)


def pitch_by_age() -> pd.DataFrame:
    """Voice pitch (Hz) of six speakers of different ages.

    R: lm(pitch ~ age) gives (Intercept) 267.0765, age -0.9099.
    """
    return pd.DataFrame(_PITCH_BY_AGE)


def simulate_politeness(seed: int = 0) -> pd.DataFrame:
    """Simulated data with the layout of the politeness study.

    Six subjects (F1, F2, F3, M3, M4, M7) each read seven scenarios in an
    informal ('inf') and a polite ('pol') attitude, 84 rows in total.
    Frequency has subject and scenario intercepts, a by-subject attitude
    slope, a gender effect of about -110 Hz and a politeness effect of
    about -20 Hz. One frequency value is missing, as in the study data.

    Args:
        seed: Seed for np.random.default_rng

    Returns:
        DataFrame with columns subject, gender, scenario, attitude, frequency
    """
    rng = np.random.default_rng(seed)
    subjects = ['F1', 'F2', 'F3', 'M3', 'M4', 'M7']
    scenarios = np.arange(1, 8)

    subject_intercept = dict(zip(subjects, rng.normal(0.0, 20.0, len(subjects))))
    subject_slope = dict(zip(subjects, rng.normal(0.0, 5.0, len(subjects))))
    scenario_intercept = dict(zip(scenarios, rng.normal(0.0, 15.0, len(scenarios))))

    rows = []
    for subject in subjects:
        gender = subject[0]
        for scenario in scenarios:
            for attitude in ('inf', 'pol'):
                polite = attitude == 'pol'
                frequency = (
                    256.0
                    - 110.0 * (gender == 'M')
                    + (-20.0 + subject_slope[subject]) * polite
                    + subject_intercept[subject]
                    + scenario_intercept[scenario]
                    + rng.normal(0.0, 25.0)
                )
                rows.append((subject, gender, scenario, attitude, frequency))

    df = pd.DataFrame(rows, columns=['subject', 'gender', 'scenario', 'attitude', 'frequency'])
    df.loc[38, 'frequency'] = np.nan
    return df
