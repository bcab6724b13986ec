"""
Drug Interaction Engine - Curated Knowledge Base Content
Static drug-pair interactions and CPIC pharmacogenomic guidance.
"""

# Format: (drug_a, drug_b, severity, mechanism, effect, management, evidence_level, sources, (rxcui_a, rxcui_b))
KNOWN_INTERACTIONS = [
    # Anticoagulation & bleeding risk
    ("aspirin", "warfarin", "major",
     "Additive anticoagulant/antiplatelet effects",
     "Significantly increased bleeding risk",
     "Avoid combination or monitor very closely; frequent INR checks",
     "A", ("Clinical literature", "FDA guidelines"), ("1191", "11289")),
    ("warfarin", "amiodarone", "major",
     "CYP2C9 inhibition increases warfarin exposure",
     "Significantly increased bleeding risk",
     "Reduce warfarin dose by 25-50%; monitor INR closely",
     "A", ("Cardiology guidelines", "FDA"), ("11289", "703")),
    ("warfarin", "fluconazole", "major",
     "CYP2C9 inhibition",
     "Increased anticoagulation effect",
     "Monitor INR daily; consider dose reduction",
     "A", ("Clinical pharmacology",), ("11289", "4450")),
    ("warfarin", "trimethoprim-sulfamethoxazole", "major",
     "CYP2C9 inhibition and protein binding displacement",
     "Increased bleeding risk",
     "Monitor INR frequently; adjust warfarin dose",
     "A", ("Clinical studies",), ("11289", "8576")),
    ("dabigatran", "rifampin", "major",
     "P-glycoprotein induction reduces dabigatran exposure",
     "Reduced anticoagulant efficacy",
     "Avoid combination; use alternative anticoagulant",
     "B", ("FDA label",), ("1037042", "9384")),
    ("rivaroxaban", "ketoconazole", "major",
     "CYP3A4 and P-glycoprotein inhibition",
     "Increased bleeding risk",
     "Avoid combination; monitor for bleeding signs",
     "A", ("FDA warnings",), ("1114195", "6135")),
    ("warfarin", "ciprofloxacin", "moderate",
     "CYP1A2/3A4 inhibition increases warfarin exposure",
     "Increased INR and bleeding risk",
     "Monitor INR closely; adjust warfarin dose if needed",
     "B", ("Clinical studies",), ("11289", "2551")),
    ("azithromycin", "warfarin", "moderate",
     "Enhanced anticoagulation effect",
     "Increased bleeding risk",
     "Monitor INR more frequently during antibiotic course",
     "B", ("Clinical studies",), ("18631", "11289")),

    # Oncology
    ("tamoxifen", "paroxetine", "major",
     "CYP2D6 inhibition reduces conversion to endoxifen",
     "Reduced tamoxifen efficacy",
     "Avoid combination; choose an antidepressant without CYP2D6 inhibition",
     "A", ("Oncology guidelines",), ("10324", "32937")),
    ("capecitabine", "warfarin", "major",
     "CYP2C9 suppression",
     "Markedly elevated INR and bleeding",
     "Monitor INR frequently; consider alternative anticoagulant",
     "A", ("FDA black box warning",), ("194000", "11289")),
    ("methotrexate", "trimethoprim-sulfamethoxazole", "major",
     "Additive antifolate effects and reduced renal clearance",
     "Bone marrow suppression",
     "Avoid combination; monitor blood counts if unavoidable",
     "A", ("Clinical studies",), ("6851", "8576")),

    # Pain management
    ("methadone", "amiodarone", "major",
     "Additive QT prolongation",
     "Torsades de pointes risk",
     "Avoid combination; ECG monitoring if unavoidable",
     "B", ("Cardiology guidelines",), ("6813", "703")),
    ("tramadol", "sertraline", "major",
     "Serotonin syndrome risk",
     "Hyperthermia, altered mental status, neuromuscular abnormalities",
     "Avoid combination; use alternative analgesic",
     "B", ("FDA warnings", "Pain management guidelines"), ("10689", "36437")),
    ("tramadol", "fluoxetine", "major",
     "Serotonergic toxicity risk; CYP2D6 inhibition reduces analgesia",
     "Serotonin syndrome; decreased tramadol effectiveness",
     "Avoid combination; consider non-serotonergic analgesic",
     "B", ("FDA warnings",), ("10689", "4493")),
    ("morphine", "gabapentin", "moderate",
     "Additive CNS depressant effects",
     "Enhanced sedation and respiratory depression",
     "Start with lower doses; monitor closely",
     "C", ("Pain management literature",), ("7052", "25480")),
    ("fentanyl", "rifampin", "major",
     "CYP3A4 induction reduces fentanyl exposure",
     "Loss of analgesic efficacy",
     "Avoid rifampin or increase fentanyl dose significantly",
     "B", ("Anesthesiology studies",), ("4337", "9384")),

    # Cardiovascular
    ("digoxin", "amiodarone", "major",
     "P-glycoprotein inhibition increases digoxin levels",
     "Digoxin toxicity risk",
     "Reduce digoxin dose by 50%; monitor levels closely",
     "A", ("Cardiovascular pharmacology",), ("3407", "703")),
    ("amiodarone", "simvastatin", "major",
     "CYP3A4 inhibition increases simvastatin exposure",
     "Myopathy and rhabdomyolysis risk",
     "Limit simvastatin to 20mg daily; consider pravastatin",
     "A", ("ACC/AHA guidelines",), ("703", "36567")),
    ("verapamil", "digoxin", "moderate",
     "P-glycoprotein inhibition increases digoxin levels",
     "Digoxin toxicity",
     "Reduce digoxin dose by 25%; monitor levels",
     "A", ("Cardiology references",), ("11170", "3407")),
    ("amlodipine", "simvastatin", "moderate",
     "CYP3A4 inhibition increases statin exposure",
     "Myopathy risk",
     "Limit simvastatin to 20mg daily",
     "A", ("FDA recommendations",), ("17767", "36567")),
    ("diltiazem", "metoprolol", "moderate",
     "Additive negative chronotropic effects",
     "Bradycardia and heart block risk",
     "Monitor heart rate and conduction; dose reduction may be needed",
     "B", ("Clinical experience",), ("3443", "6918")),
    ("enalapril", "spironolactone", "moderate",
     "Additive hyperkalemic effects",
     "Hyperkalemia risk",
     "Monitor serum potassium regularly",
     "A", ("Nephrology guidelines",), ("3827", "9997")),
    ("clonidine", "metoprolol", "moderate",
     "Additive bradycardia; beta-blockade worsens clonidine withdrawal hypertension",
     "Bradycardia and rebound hypertension",
     "Taper beta-blocker before clonidine withdrawal; monitor heart rate",
     "B", ("Cardiology references",), ("2599", "6918")),

    # Psychiatry & neurology
    ("lithium", "hydrochlorothiazide", "major",
     "Reduced lithium clearance",
     "Lithium toxicity risk",
     "Monitor lithium levels frequently; adjust dose as needed",
     "A", ("Psychiatry guidelines",), ("6448", "5487")),
    ("valproic acid", "lamotrigine", "moderate",
     "Inhibition of lamotrigine glucuronidation",
     "Lamotrigine toxicity including serious rash",
     "Start lamotrigine at lower dose; titrate slowly",
     "A", ("Epilepsy guidelines",), ("11118", "48527")),
    ("clozapine", "ciprofloxacin", "major",
     "CYP1A2 inhibition increases clozapine levels",
     "Increased risk of seizures and agranulocytosis",
     "Monitor clozapine levels and CBC; reduce dose",
     "A", ("Psychiatry guidelines",), ("2626", "2551")),
    ("zolpidem", "fluconazole", "minor",
     "CYP3A4 inhibition increases zolpidem exposure",
     "Prolonged sedation",
     "Consider a lower zolpidem dose",
     "C", ("Product labeling",), ("39993", "4450")),

    # Anti-infectives
    ("theophylline", "ciprofloxacin", "major",
     "CYP1A2 inhibition reduces theophylline clearance",
     "Theophylline toxicity with seizures possible",
     "Avoid combination or reduce theophylline dose significantly",
     "A", ("FDA", "Clinical studies"), ("10379", "2551")),
    ("rifampin", "oral contraceptives", "major",
     "CYP3A4 induction reduces contraceptive efficacy",
     "High risk of unintended pregnancy",
     "Use alternative contraceptive methods during treatment",
     "A", ("TB treatment guidelines",), None),

    # Endocrine & renal
    ("metformin", "contrast media", "major",
     "Risk of lactic acidosis with renal impairment",
     "Potentially fatal lactic acidosis",
     "Hold metformin 48h before and after contrast administration",
     "A", ("Radiology guidelines", "FDA"), None),
    ("glyburide", "fluconazole", "moderate",
     "CYP2C9 inhibition increases glyburide exposure",
     "Severe hypoglycemia risk",
     "Monitor blood glucose closely; reduce glyburide dose",
     "B", ("Diabetes management guidelines",), ("4821", "4450")),
    ("levothyroxine", "calcium carbonate", "minor",
     "Chelation reduces levothyroxine absorption",
     "Hypothyroidism",
     "Separate administration by 4 hours",
     "A", ("Endocrinology guidelines",), ("10582", "1378")),
    ("dapagliflozin", "furosemide", "moderate",
     "Additive diuresis and volume depletion",
     "Hypotension and dehydration",
     "Assess volume status; consider loop diuretic dose reduction",
     "B", ("Product labeling",), ("1488564", "4603")),
    ("torsemide", "lithium", "moderate",
     "Loop diuretics reduce lithium clearance",
     "Lithium toxicity",
     "Monitor lithium levels when starting or changing diuretic",
     "B", ("Psychiatry guidelines",), ("38413", "6448")),

    # Transplant & miscellaneous
    ("tacrolimus", "fluconazole", "major",
     "CYP3A4 inhibition increases tacrolimus exposure",
     "Nephrotoxicity and immunosuppression",
     "Monitor tacrolimus levels; reduce dose significantly",
     "A", ("Transplant guidelines",), ("42316", "4450")),
    ("simvastatin", "gemfibrozil", "major",
     "Inhibition of simvastatin glucuronidation",
     "Severe myopathy and rhabdomyolysis risk",
     "Avoid combination; use alternative statin if needed",
     "A", ("FDA warning",), ("36567", "25025")),
    ("colchicine", "clarithromycin", "major",
     "CYP3A4 and P-glycoprotein inhibition",
     "Colchicine toxicity with organ failure",
     "Reduce colchicine dose significantly or avoid",
     "A", ("FDA warnings",), ("2683", "21212")),
    ("sildenafil", "nitroglycerin", "major",
     "Additive vasodilation",
     "Severe hypotension and cardiovascular collapse",
     "Absolute contraindication; avoid combination",
     "A", ("FDA black box warning",), ("136411", "4917")),
    ("allopurinol", "azathioprine", "major",
     "Inhibition of azathioprine metabolism",
     "Severe bone marrow suppression",
     "Reduce azathioprine dose by 75%; monitor blood counts",
     "A", ("Rheumatology guidelines",), ("519", "1256")),
    ("febuxostat", "azathioprine", "major",
     "Xanthine oxidase inhibition blocks azathioprine inactivation",
     "Severe bone marrow suppression",
     "Contraindicated combination",
     "A", ("FDA label",), ("73689", "1256")),
]


# CPIC level A gene/drug guidance
# Format: (gene, gene_name, drug, search_terms, phenotype, recommendation, implications, dosage_adjustment)
PHARMACOGENOMIC_GUIDELINES = [
    ("DPYD", "Dihydropyrimidine Dehydrogenase", "fluorouracil", ("fluorouracil", "5-fu", "adrucil"),
     "DPYD deficiency", "Avoid use or reduce dose by 50% or more",
     "Severe toxicity risk with normal 5-FU dosing", "Start with 50% dose reduction"),
    ("DPYD", "Dihydropyrimidine Dehydrogenase", "capecitabine", ("capecitabine", "xeloda"),
     "DPYD deficiency", "Avoid use or reduce dose by 50% or more",
     "Severe toxicity risk with normal dosing", "Start with 50% dose reduction"),
    ("UGT1A1", "UDP Glucuronosyltransferase Family 1 Member A1", "irinotecan", ("irinotecan", "camptosar"),
     "UGT1A1*28/*28", "Reduce starting dose by 1 level",
     "Increased risk of neutropenia", "Reduce starting dose by 25-50%"),
    ("CYP2C19", "Cytochrome P450 Family 2 Subfamily C Member 19", "clopidogrel", ("clopidogrel", "plavix"),
     "Poor Metabolizer", "Alternative antiplatelet therapy",
     "Reduced efficacy of clopidogrel", "Use prasugrel or ticagrelor instead"),
    ("CYP2C9", "Cytochrome P450 Family 2 Subfamily C Member 9", "warfarin", ("warfarin", "coumadin"),
     "Poor Metabolizer", "Reduce dose by 25-50%",
     "Increased bleeding risk", "Start with lower dose and monitor INR closely"),
    ("TPMT", "Thiopurine S-Methyltransferase", "azathioprine", ("azathioprine", "imuran"),
     "Poor Metabolizer", "Reduce dose by 90% or avoid",
     "Severe bone marrow toxicity risk", "Start with 10% of standard dose"),
    ("TPMT", "Thiopurine S-Methyltransferase", "mercaptopurine", ("6-mercaptopurine", "mercaptopurine", "purinethol"),
     "Poor Metabolizer", "Reduce dose by 90% or avoid",
     "Severe bone marrow toxicity risk", "Start with 10% of standard dose"),
    ("CYP2D6", "Cytochrome P450 Family 2 Subfamily D Member 6", "codeine", ("codeine",),
     "Poor Metabolizer", "Avoid codeine, use alternative analgesic",
     "Lack of analgesic efficacy", "Use morphine or other non-codeine opioid"),
    ("CYP2D6", "Cytochrome P450 Family 2 Subfamily D Member 6", "tramadol", ("tramadol", "ultram"),
     "Poor Metabolizer", "Avoid tramadol, use alternative analgesic",
     "Lack of analgesic efficacy", "Use morphine or other non-tramadol opioid"),
]


# Generic names with a known RXCUI; consulted before the cache and the terminology service
STATIC_IDENTIFIERS = {
    "aspirin": "1191",
    "acetaminophen": "161",
    "amiodarone": "703",
    "amlodipine": "17767",
    "azithromycin": "18631",
    "ciprofloxacin": "2551",
    "clonidine": "2599",
    "clopidogrel": "32968",
    "digoxin": "3407",
    "diltiazem": "3443",
    "fluconazole": "4450",
    "fluoxetine": "4493",
    "gabapentin": "25480",
    "ibuprofen": "5640",
    "lithium": "6448",
    "metformin": "6809",
    "metoprolol": "6918",
    "morphine": "7052",
    "omeprazole": "7646",
    "sertraline": "36437",
    "simvastatin": "36567",
    "tramadol": "10689",
    "verapamil": "11170",
    "warfarin": "11289",
}
