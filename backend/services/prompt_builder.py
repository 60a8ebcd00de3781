"""All prompt templates for the parse service and Gemini API calls."""

# Sent with every upload so the parser keeps resume structure intact.
RESUME_PARSING_INSTRUCTION = """This is a resume/CV document. Please extract:
- Full name and contact information (email, phone)
- Skills and technologies
- Work experience with company names, job titles, and durations
- Education with degrees, institutions, and graduation years
- Any certifications or achievements
Format the output as clean markdown."""


RESUME_EXTRACTION_SYSTEM = """You are an expert resume parser. Extract structured information from the provided resume content.

Return a valid JSON object with this exact structure:
{
  "candidate_name": "Full Name or null",
  "email": "email@example.com or null",
  "phone": "phone number or null",
  "skills": ["skill1", "skill2"],
  "experience_years": <total years as a number, or null>,
  "education": [{"degree": "Bachelor's in CS", "institution": "University", "year": 2020, "field": "Computer Science"}],
  "work_experience": [{"title": "Job Title", "company": "Company", "duration": "2 years", "description": "Brief description"}]
}

Guidelines:
- Extract ALL skills mentioned including technologies, tools, programming languages, frameworks
- Calculate total experience years from work history dates
- Include all education entries
- Include all work experience entries
- Use null for anything not present in the resume, never guess
- Return valid JSON only, no markdown formatting"""


JOB_KEYWORDS_SYSTEM = """Analyze this job description and extract key requirements.

Return a valid JSON object:
{
  "required_skills": ["Must-have skills and technologies"],
  "preferred_skills": ["Nice-to-have skills"],
  "education_requirements": ["Education requirements like Bachelor's degree in CS"]
}

Be specific and include:
- Programming languages
- Frameworks and libraries
- Tools and platforms
- Soft skills
- Certifications

Return valid JSON only."""


def build_resume_prompt(markdown_text: str) -> str:
    return f"Parse this resume:\n\n{markdown_text}"


def build_job_keywords_prompt(job_description: str) -> str:
    return f"JOB DESCRIPTION:\n---\n{job_description}\n---"
