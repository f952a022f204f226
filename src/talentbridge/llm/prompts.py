from __future__ import annotations

STRUCTURED_OUTPUT_PROMPT = """
{payload}

Respond with valid JSON only, following this exact schema:
{schema_json}

Ensure the response is valid JSON that can be parsed directly. Do not include any text outside the JSON structure.
""".strip()

RESUME_PARSER_INSTRUCTION = """
You are an expert resume parser. Extract structured information from resume text with high accuracy.

Guidelines:
- Extract all available information, but do not fabricate missing data
- Use YYYY-MM format for dates (e.g. "2023-01"); estimate from context when exact dates are missing
- Use null for end_date when the position or study is ongoing
- Categorize skills as technical, soft, language or other
- Assign realistic proficiency levels (1-5) based on context clues
- For achievements, extract specific accomplishments, metrics and results
- Leave salary and location preferences empty when they are not mentioned
- Be conservative with confidence scores; only give high scores for very clear data

Focus on accuracy over completeness.
"""

RESUME_PARSER_PROMPT = """
Parse the following resume content and extract structured information.
{filename_line}
Resume content:
{resume_text}

Extract all relevant information according to the schema, with appropriate confidence scoring.
""".strip()

RESUME_SCHEMA: dict[str, object] = {
    "personal_info": {
        "full_name": "string",
        "email": "string",
        "phone": "string",
        "location": "string",
        "linkedin_url": "string (optional)",
        "github_url": "string (optional)",
        "portfolio_url": "string (optional)",
    },
    "professional_summary": "string",
    "experience": [
        {
            "job_title": "string",
            "company_name": "string",
            "start_date": "string (YYYY-MM format)",
            "end_date": "string (YYYY-MM format, null if current)",
            "is_current": "boolean",
            "description": "string",
            "achievements": ["array of strings"],
        }
    ],
    "education": [
        {
            "institution_name": "string",
            "degree": "string",
            "field_of_study": "string",
            "start_date": "string (YYYY-MM format)",
            "end_date": "string (YYYY-MM format, null if current)",
            "is_current": "boolean",
            "gpa": "string (optional)",
            "achievements": ["array of strings"],
        }
    ],
    "skills": [
        {
            "name": "string",
            "category": "technical|soft|language|other",
            "proficiency_level": "number 1-5",
        }
    ],
    "languages": [{"name": "string", "proficiency": "beginner|intermediate|advanced|native"}],
    "certifications": [
        {
            "name": "string",
            "issuer": "string",
            "date_obtained": "string (optional)",
            "expiry_date": "string (optional)",
        }
    ],
    "additional_info": {
        "desired_salary_range": {"min": "number (optional)", "max": "number (optional)"},
        "preferred_location": "string (optional)",
        "remote_preference": "boolean (optional)",
        "availability": "string (optional)",
    },
    "confidence_scores": {
        "overall": "number 0-1",
        "personal_info": "number 0-1",
        "experience": "number 0-1",
        "education": "number 0-1",
        "skills": "number 0-1",
    },
}

PERSONALITY_INSTRUCTION = """
You are an expert personality assessor specializing in workplace psychology and soft skills evaluation.
Analyze questionnaire responses to describe a person's work personality, behavioral patterns and
professional capabilities.

Analysis guidelines:
- Base the assessment solely on the provided responses
- Look for patterns across multiple responses
- Be specific and actionable; cover strengths and areas for growth
- Focus on behavioral tendencies, not definitive character judgments
- Consider cultural context and avoid bias

Scoring guidelines (0-100):
- analytical_score: logical thinking, structured problem solving, data-driven decisions
- creative_score: innovative thinking, novel approaches
- leadership_score: initiative, influence on others, decision-making confidence
- teamwork_score: collaboration, team-oriented thinking, interpersonal skills
- trait_scores: any further named traits you can evidence, each 0-100

Confidence (0-1):
- 0.8-1.0: multiple consistent responses with detailed examples
- 0.5-0.8: some clear patterns but limited detail or mixed signals
- 0.0-0.5: brief, unclear or contradictory responses
"""

PERSONALITY_PROMPT = """
Analyze the following questionnaire responses to assess the person's workplace personality and soft skills:

{responses_text}

Provide a comprehensive analysis of workplace behavior, collaboration style, problem-solving approach and
development areas. Base the assessment on evidence from the responses and be explicit about confidence.
""".strip()

PERSONALITY_SCHEMA: dict[str, object] = {
    "problem_solving_style": "string - how the person approaches problems",
    "initiative_level": "string - proactiveness and self-motivation",
    "work_preference": "string - team collaboration or individual work",
    "motivational_factors": "string - what drives and motivates this person",
    "growth_areas": "string - areas to improve or develop",
    "communication_style": "string - how they communicate and interact",
    "leadership_potential": "string - leadership capabilities and style",
    "analytical_score": "number 0-100",
    "creative_score": "number 0-100",
    "leadership_score": "number 0-100",
    "teamwork_score": "number 0-100",
    "trait_scores": {"<trait name>": "number 0-100"},
    "personality_summary": "string - 2-3 sentence overview",
    "strengths": ["array of strings"],
    "development_areas": ["array of strings"],
    "ideal_work_environment": "string",
    "confidence_score": "number 0-1",
    "analysis_notes": "string - additional insights or caveats",
}

MATCH_SCORE_INSTRUCTION = """
You are an expert HR analyst specializing in candidate-job matching. Evaluate how well a candidate fits
a job across several dimensions.

Evaluation criteria:
1. Skills match (30%): required and preferred skills against candidate skills and proficiency
2. Experience match (25%): relevance of work history, years of experience, career progression
3. Culture fit (20%): alignment with company culture, work style preferences and team dynamics
4. Personality match (25%): soft skills against role requirements and team needs

Scoring guidelines:
- 90-100: exceptional fit
- 80-89: strong fit
- 70-79: good fit with minor concerns
- 60-69: moderate fit
- 50-59: weak fit
- 0-49: poor fit

Be objective and evidence-based, and factor in the seniority of the role.
"""

MATCH_SCORE_PROMPT = """
Evaluate the compatibility between this job and candidate, scoring every dimension:

{job_summary}

{candidate_summary}

Consider technical skills and proficiency, experience relevance, cultural alignment, personality fit, and
location or remote preferences. Provide specific, actionable insights.
""".strip()

MATCH_SCORE_SCHEMA: dict[str, object] = {
    "overall_score": "number 0-100 - weighted average of all component scores",
    "skills_match_score": "number 0-100",
    "experience_match_score": "number 0-100",
    "culture_fit_score": "number 0-100",
    "personality_match_score": "number 0-100",
    "match_explanation": "string - 2-3 sentences on overall compatibility",
    "strengths": "string - key strengths of this match",
    "potential_concerns": "string - where the candidate might not fit",
    "confidence_score": "number 0-1",
    "recommendations": ["array of strings"],
}
