"""
Prompt template and agent instructions for company/project matching.
"""

MATCHING_INSTRUCTIONS = (
    'You are an expert at matching company capabilities with project requirements. '
    'Analyze the alignment between the company profile and project description, '
    'then provide a matching score from 0-100 and detailed reasoning.'
)

FIT_INSTRUCTIONS = (
    'You are an expert at matching company capabilities with project requirements. '
    'Analyze the alignment and provide a score from 0-100.'
)


def build_matching_prompt(company_profile: str, project_description: str) -> str:
    return f"""Analyze how well this company matches with the project requirements.

Company Profile:
{company_profile}

Project Description:
{project_description}

Evaluate the match and respond with a JSON object containing:
{{
  "score": <number from 0-100>,
  "reasoning": "<detailed explanation of why this score was given>",
  "matchedAreas": [<array of specific areas where company capabilities align with project needs>]
}}

Consider the following factors:
- Technical skills and expertise alignment
- Industry experience and domain knowledge
- Company size and capacity to handle the project
- Relevant past work or specializations
- Any specific requirements mentioned in the project description

Provide a score where:
- 90-100: Excellent fit, company strongly matches all key requirements
- 70-89: Good fit, company matches most requirements with minor gaps
- 50-69: Moderate fit, some alignment but notable gaps exist
- 30-49: Poor fit, limited alignment with requirements
- 0-29: Very poor fit, significant misalignment"""
