"""Prompt sent to the vision model with every lab report image."""

CANONICAL_PARAMETER_KEYS = (
    "pH", "N", "P", "K", "Ca", "Mg", "S",
    "CEC", "OC", "B", "Zn", "Cu", "Mn", "Fe",
)

VISION_EXTRACTION_PROMPT = f"""You are reading a scanned agricultural laboratory report: a soil analysis or a leaf (foliar tissue) analysis.

Transcribe the page and extract every nutrient reading it contains.

Rules:
- Copy numbers exactly as printed. Do not round, convert or correct them.
- Keep each value together with its parameter and unit (%, ppm, mg/kg, cmol/kg, meq/100g).
- Use these parameter keys where they apply: {", ".join(CANONICAL_PARAMETER_KEYS)}.
  Any other parameter keeps the name printed on the report.
- Give each reading a confidence between 0 and 1. Use lower values for faded,
  handwritten or partly hidden numbers.
- analysisType is "soil", "leaf" or "unknown".
- Leave out laboratory or sampleInfo fields that are not on the page.

Reply with one JSON object and nothing else:
{{
  "extractedText": "full transcription of the page",
  "structuredData": {{
    "parameters": {{
      "N": {{"value": 2.45, "unit": "%", "confidence": 0.95}}
    }},
    "analysisType": "soil|leaf|unknown",
    "laboratory": "laboratory name",
    "sampleInfo": {{
      "sampleId": "sample identifier",
      "date": "sampling or report date",
      "location": "estate, block or field",
      "depth": "sampling depth for soil"
    }}
  }},
  "confidence": 0.9
}}"""
