"""
Built-in lab test catalog.

Same shape as the JSON catalog accepted through LAB_CATALOG_PATH: category
name -> ordered list of test entries.  Calculated tests carry both
"Depends On" and "Formula".
"""

from __future__ import annotations

DEFAULT_CATALOG_DATA: dict[str, list[dict]] = {
    "Complete Blood Count": [
        {"Test Name": "Hb", "Unit": "g/dL",
         "Reference Range": {"Normal Male": "13.5-17.5", "Normal Female": "12.0-15.5"}},
        {"Test Name": "RBCs", "Unit": "million/µL",
         "Reference Range": {"Normal Male": "4.7-6.1", "Normal Female": "4.2-5.4"}},
        {"Test Name": "HCT", "Unit": "%",
         "Reference Range": {"Normal Male": "41-50", "Normal Female": "36-44"}},
        {"Test Name": "MCV", "Unit": "fL", "Reference Range": "80-100"},
        {"Test Name": "MCH", "Unit": "pg", "Reference Range": "27-33",
         "Depends On": ["Hb", "RBCs"], "Formula": "MCH = (Hb × 10) ÷ RBC"},
        {"Test Name": "MCHC", "Unit": "g/dL", "Reference Range": "32-36",
         "Depends On": ["Hb", "HCT"], "Formula": "MCHC = (Hb × 100) ÷ HCT"},
        {"Test Name": "WBCs", "Unit": "×10³/µL", "Reference Range": "4.5-11.0"},
        {"Test Name": "PLT", "Unit": "×10³/µL", "Reference Range": "150-450"},
        {"Test Name": "MPV", "Unit": "fL", "Reference Range": "7.5-11.5"},
        {"Test Name": "PCT", "Unit": "%", "Reference Range": "0.22-0.24",
         "Depends On": ["MPV", "PLT"], "Formula": "PCT = (MPV × PLT) ÷ 10,000"},
    ],
    "Liver Function": [
        {"Test Name": "AST (SGOT)", "Unit": "U/L", "Reference Range": "10-40"},
        {"Test Name": "ALT (SGPT)", "Unit": "U/L", "Reference Range": "7-56"},
        {"Test Name": "AST/ALT Ratio", "Unit": "", "Reference Range": "0.8-1.2",
         "Depends On": ["AST (SGOT)", "ALT (SGPT)"], "Formula": "AST/ALT Ratio = AST / ALT"},
        {"Test Name": "Total Bilirubin", "Unit": "mg/dL", "Reference Range": "0.1-1.2"},
        {"Test Name": "Direct Bilirubin", "Unit": "mg/dL", "Reference Range": "0.0-0.3"},
        {"Test Name": "Indirect Bilirubin", "Unit": "mg/dL", "Reference Range": "0.2-0.8",
         "Depends On": ["Total Bilirubin", "Direct Bilirubin"],
         "Formula": "Indirect = Total - Direct"},
        {"Test Name": "Total Protein", "Unit": "g/dL", "Reference Range": "6.0-8.3"},
        {"Test Name": "Albumin", "Unit": "g/dL", "Reference Range": "3.5-5.0"},
        {"Test Name": "A/G Ratio", "Unit": "", "Reference Range": "1.1-2.5",
         "Depends On": ["Albumin", "Total Protein"],
         "Formula": "A/G Ratio = Albumin / (Total Protein - Albumin)"},
        {"Test Name": "FIB-4", "Unit": "", "Reference Range": "<1.3",
         "Depends On": ["Age", "AST (SGOT)", "ALT (SGPT)", "PLT"],
         "Formula": "FIB-4 = (Age × AST) / (Platelet × √ALT)"},
    ],
    "Kidney Function": [
        {"Test Name": "Urea", "Unit": "mg/dL", "Reference Range": "15-45"},
        {"Test Name": "Creatinine", "Unit": "mg/dL",
         "Reference Range": {"Normal Male": "0.7-1.3", "Normal Female": "0.6-1.1"}},
        {"Test Name": "Uric Acid", "Unit": "mg/dL",
         "Reference Range": {"Normal Male": "3.4-7.0", "Normal Female": "2.4-6.0"}},
        {"Test Name": "eGFR", "Unit": "mL/min/1.73m²", "Reference Range": ">90",
         "Depends On": ["Creatinine", "Age", "Gender"],
         "Formula": "CKD-EPI or MDRD equation"},
    ],
    "Diabetes Panel": [
        {"Test Name": "Fasting Blood Glucose", "Unit": "mg/dL",
         "Reference Range": {"Normal": "70-99", "Pre-diabetic": "100-125", "Diabetic": "≥126"}},
        {"Test Name": "Fasting Insulin", "Unit": "µIU/mL", "Reference Range": "2-25"},
        {"Test Name": "HOMA-IR", "Unit": "", "Reference Range": "<2.5",
         "Depends On": ["Fasting Blood Glucose", "Fasting Insulin"],
         "Formula": "HOMA-IR = (Fasting Glucose × Fasting Insulin) / 405"},
        {"Test Name": "HbA1c", "Unit": "%",
         "Reference Range": {"Normal": "<5.7", "Pre-diabetic": "5.7-6.4", "Diabetic": "≥6.5"}},
        {"Test Name": "eAG", "Unit": "mg/dL", "Reference Range": "<117",
         "Depends On": ["HbA1c"], "Formula": "eAG = (28.7 × HbA1c) - 46.7"},
    ],
    "Pulmonary Function": [
        {"Test Name": "FEV1", "Unit": "L", "Reference Range": ">80"},
        {"Test Name": "FVC", "Unit": "L", "Reference Range": ">80"},
        {"Test Name": "FEV1/FVC Ratio", "Unit": "%", "Reference Range": ">70",
         "Depends On": ["FEV1", "FVC"], "Formula": "FEV1/FVC Ratio = FEV1 ÷ FVC"},
    ],
}
