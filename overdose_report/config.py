import os

# Input/output defaults; override with OVERDOSE_DATA_PATH / OVERDOSE_OUTPUT_DIR.
DEFAULT_DATA_PATH = os.environ.get(
    "OVERDOSE_DATA_PATH", os.path.join("data", "Accidental_Drug_Related_Deaths.csv")
)
DEFAULT_OUTPUT_DIR = os.environ.get("OVERDOSE_OUTPUT_DIR", "outputs")

# ----------------------------
# Raw CSV schema (header -> field)
# ----------------------------
REQUIRED_COLUMNS = {
    "Index": "row_id",
    "ID": "id",
    "Date": "date",
    "DateType": "date_type",
    "Sex": "sex",
    "Age": "age",
    "Location": "location",
    "DeathCounty": "death_county",
    "Heroin": "heroin",
    "Fentanyl": "fentanyl",
    "FentanylAnalogue": "fentanyl_analogue",
    "Cocaine": "cocaine",
    "Oxycodone": "oxycodone",
    "Oxymorphone": "oxymorphone",
    "Morphine_NotHeroin": "morphine_not_heroin",
    "Ethanol": "ethanol",
    "Hydrocodone": "hydrocodone",
    "Benzodiazepine": "benzodiazepine",
    "Methadone": "methadone",
    "Amphet": "amphetamine",
    "Tramad": "tramadol",
    "Hydromorphone": "hydromorphone",
}

OPTIONAL_COLUMNS = {
    "Race": "race",
    "ResidenceCity": "residence_city",
    "ResidenceCounty": "residence_county",
    "ResidenceState": "residence_state",
    "DeathCity": "death_city",
    "LocationifOther": "location_if_other",
    "DescriptionofInjury": "description_of_injury",
    "InjuryPlace": "injury_place",
    "InjuryCity": "injury_city",
    "InjuryCounty": "injury_county",
    "InjuryState": "injury_state",
    "COD": "cause_of_death",
    "OtherSignifican": "other_significant_factors",
    "Other": "other",
    "OpiateNOS": "opiate_nos",
    "AnyOpioid": "any_opioid",
    "MannerofDeath": "manner_of_death",
}

RAW_COLUMNS = {**REQUIRED_COLUMNS, **OPTIONAL_COLUMNS}

# Columns consumed by the long-form reshape, besides the substances.
SUBJECT_COLUMNS = ["id", "sex", "age", "location"]

# Tracked substances after the fentanyl/morphine merges, in output order.
SUBSTANCES = [
    "heroin", "fentanyl", "morphine", "cocaine", "oxycodone", "oxymorphone",
    "ethanol", "hydrocodone", "benzodiazepine", "methadone", "amphetamine",
    "tramadol", "hydromorphone",
]

FLAG_VALUES = {"0", "1"}

# Low-value columns, chosen by inspecting the missingness table.
DROPPED_COLUMNS = [
    "other_significant_factors",
    "other",
    "location_if_other",
    "injury_state",
    "injury_county",
]

# Used only for the missingness inspection chart.
MISSINGNESS_THRESHOLD = 0.5

# ----------------------------
# Aggregation rules
# ----------------------------
AGE_BAND_EDGES = [float("-inf"), 20, 30, 40, 50, 60, float("inf")]
AGE_BAND_LABELS = ["<20", "20-29", "30-39", "40-49", "50-59", "60+"]

TOP_N = 3
OTHER_LABEL = "Other"

TIME_UNITS = ("year", "month", "weekday")
WEEKDAY_LABELS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
