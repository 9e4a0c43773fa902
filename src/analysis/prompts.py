"""Prompt templates for ingredient analysis.

One template per result schema version. Each states the assistant's role,
embeds the OCR text verbatim, spells out the exact JSON to return and asks
for a reply without markdown fences.
"""

from string import Template

from src.api.schemas import SchemaVersion

_FLAT_TEMPLATE = Template(
    """
You are a food safety expert aligned with FSSAI (India) and global food safety standards.

Below is the text scanned from the ingredient section of a packaged food product:
$ocr_text

Decide whether the product is healthy overall. List every ingredient that is
unhealthy, and for each one describe its impact on health together with the
time span over which regular consumption causes it.

Suggest 2-3 healthier alternatives from Indian brands, each with a buy link
pointing to the official brand site, Amazon or another major retailer.

Respond in the exact JSON format below (no markdown fences):

{
  "is_healthy": "Healthy" | "Unhealthy",
  "unhealthy_ingredients": {
    "ingredient1": "short note on why it is a concern"
  },
  "health_impacts": {
    "ingredient1": "Effect on health (time span)"
  },
  "suggested_alternatives": [
    {
      "name": "Product name",
      "brand": "Brand",
      "category": "Category",
      "buy_link": "https://www.amazon.in/..."
    }
  ]
}
"""
)

_STRUCTURED_TEMPLATE = Template(
    """
You are a food safety expert aligned with FSSAI (India) and global food safety standards.

Below is the text scanned from the ingredient section of a packaged food product:
$ocr_text

Perform the following steps:

1. Extract the list of ingredients from the scanned text. Ignore nutritional
   information, usage instructions and manufacturer details.

2. Classify each ingredient:
   - Type: "Artificial", "Natural" or "Synthetic"
   - Processing Level: "Processed" or "Unprocessed"
   - Safety Level (as per FSSAI): "Above Safe Limit", "Below Safe Limit" or "Limit Not Specified"
   - Health Impact: known effects on human health (e.g. "Linked to diabetes",
     "Potential allergen", "No known adverse effect")

3. Generate alerts:
   - Total number of concerning ingredients: artificial or synthetic, above
     safe limits, or with harmful health impacts
   - Product labels, any combination of:
     "Contains Artificial Substances", "Contains Synthetic Substances",
     "Unhealthy", "Potentially Harmful", and exactly one of "Processed" or
     "Unprocessed" for the product as a whole

4. Suggest 2-3 healthier alternatives from Indian brands that offer a similar
   product type, use only natural or minimally processed ingredients and do
   not contain the harmful substances found. Include a buy link pointing to
   the official brand site, Amazon or another major retailer.

Respond in the exact JSON format below (no markdown fences):

{
  "ingredients_analyzed": [
    {
      "name": "ingredient1",
      "type": "Artificial" | "Natural" | "Synthetic",
      "processing_level": "Processed" | "Unprocessed",
      "safety_level": "Above Safe Limit" | "Below Safe Limit" | "Limit Not Specified",
      "health_impact": "Brief summary of health effects"
    }
  ],
  "product_labels": ["Contains Artificial Substances", "Unhealthy", "Processed"],
  "total_alerts": 3,
  "suggested_alternatives": [
    {
      "name": "Tata Soulfull Ragi Cookies",
      "brand": "Tata Soulfull",
      "category": "Cookies",
      "buy_link": "https://www.amazon.in/..."
    }
  ]
}
"""
)

TEMPLATES: dict[SchemaVersion, Template] = {
    SchemaVersion.V1: _FLAT_TEMPLATE,
    SchemaVersion.V2: _STRUCTURED_TEMPLATE,
}


def build_prompt(ocr_text: str, schema_version: str = SchemaVersion.V2) -> str:
    """Build the analysis prompt for the given OCR text.

    Args:
        ocr_text: Text recognized on the label. Embedded after trimming.
        schema_version: Result schema the model must follow.

    Returns:
        The complete user prompt.

    Raises:
        ValueError: If the schema version is unknown.
    """
    try:
        template = TEMPLATES[SchemaVersion(schema_version)]
    except ValueError as exc:
        raise ValueError(f"Unsupported schema version: {schema_version}") from exc
    return template.substitute(ocr_text=ocr_text.strip())
