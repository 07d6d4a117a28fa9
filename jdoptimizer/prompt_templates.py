OPTIMIZE_PROMPT = (
    "You are an expert HR copywriter and job description optimizer. Analyze and rewrite "
    "the following job description to make it more effective at attracting top talent.\n\n"
    "Your rewrite should:\n"
    "1. Lead with the impact and opportunity, not just requirements\n"
    "2. Use clear, jargon-free language\n"
    "3. Remove unnecessary requirements (like \"10+ years\" when 5 would do)\n"
    "4. Use inclusive language that doesn't discourage qualified candidates\n"
    "5. Highlight benefits and growth opportunities\n"
    "6. Make it scannable with clear sections\n"
    "7. End with a compelling call-to-action\n\n"
    "Format your response with clear sections like:\n"
    "- Role Overview (2-3 sentences about the opportunity)\n"
    "- What You'll Do (4-6 bullet points)\n"
    "- What You Bring (skills/experience, be realistic)\n"
    "- Why Join Us (benefits, culture, growth)\n"
    "- Call to Action\n\n"
    "Original Job Description:\n{job_description}\n\n"
    "Provide ONLY the optimized job description, no preamble or explanation."
)
