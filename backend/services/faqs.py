"""Keyword-scored FAQ lookup for common caller questions."""

import logging

from backend.core import config

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = "I'm not sure about that. Let me transfer you to someone who can help."


def _format_hours(hours: dict) -> str:
    return (
        'Our office hours are:\n'
        f"Monday through Thursday: {hours['monday']}\n"
        f"Friday: {hours['friday']}\n"
        "We're closed on weekends. Feel free to leave a message after hours "
        "and we'll call you back first thing in the morning!"
    )


def _format_pricing(pricing: dict) -> str:
    return (
        'Our typical treatment costs are:\n'
        f"Initial consultation: {pricing['consultation']}\n"
        f"Traditional braces: {pricing['braces']}\n"
        f"Invisalign: {pricing['invisalign']}\n"
        f"Retainers: {pricing['retainers']}\n"
        'We offer flexible payment plans and accept most insurance. The exact cost depends on your '
        "specific treatment needs, which we'll discuss during your consultation."
    )


def build_faqs(clinic_info: dict) -> list[dict]:
    return [
        {
            'id': 1,
            'category': 'hours',
            'keywords': ['hours', 'open', 'close', 'schedule', 'when', 'time'],
            'question': 'What are your office hours?',
            'answer': _format_hours(clinic_info['hours']),
        },
        {
            'id': 2,
            'category': 'pricing',
            'keywords': ['cost', 'price', 'expensive', 'how much', 'payment', 'insurance'],
            'question': 'How much do treatments cost?',
            'answer': _format_pricing(clinic_info['pricing']),
        },
        {
            'id': 3,
            'category': 'location',
            'keywords': ['address', 'location', 'where', 'directions', 'find you'],
            'question': 'Where are you located?',
            'answer': (
                f"We're located at {clinic_info['address']}. "
                'We have ample parking available and are wheelchair accessible.'
            ),
        },
        {
            'id': 4,
            'category': 'new_patient',
            'keywords': ['new patient', 'first visit', 'first time', 'what to bring', 'bring'],
            'question': 'What should I bring to my first appointment?',
            'answer': (
                'For your first visit, please bring: your insurance card (if you have dental insurance), '
                "a valid photo ID, a list of any medications you're currently taking, and your dental history "
                'if available. Please arrive 15 minutes early to complete our new patient forms.'
            ),
        },
        {
            'id': 5,
            'category': 'insurance',
            'keywords': ['insurance', 'coverage', 'accept', 'dental plan'],
            'question': 'Do you accept insurance?',
            'answer': (
                "Yes, we accept most major dental insurance plans. We're in-network with Delta Dental, MetLife, "
                'Cigna, and Aetna. We can verify your coverage when you call to schedule. We also offer flexible '
                'payment plans for out-of-pocket costs.'
            ),
        },
        {
            'id': 6,
            'category': 'treatment',
            'keywords': ['braces', 'invisalign', 'treatment', 'options', 'types'],
            'question': 'What treatment options do you offer?',
            'answer': (
                'We offer several orthodontic treatments including traditional metal braces, clear ceramic '
                'braces, and Invisalign clear aligners. During your consultation, our orthodontist will examine '
                'your teeth and recommend the best option for your specific needs and lifestyle.'
            ),
        },
        {
            'id': 7,
            'category': 'emergency',
            'keywords': ['emergency', 'urgent', 'broken', 'pain', 'hurt', 'wire'],
            'question': 'What if I have an orthodontic emergency?',
            'answer': (
                'For orthodontic emergencies like broken brackets, poking wires, or severe pain, please call our '
                "office immediately. We have same-day emergency appointments available. If it's after hours, our "
                'answering service will connect you with the on-call orthodontist.'
            ),
        },
        {
            'id': 8,
            'category': 'duration',
            'keywords': ['how long', 'duration', 'treatment time', 'length'],
            'question': 'How long does treatment usually take?',
            'answer': (
                'Treatment length varies depending on your specific case, but typically ranges from 12 to 24 '
                "months. During your consultation, we'll provide a personalized treatment timeline."
            ),
        },
        {
            'id': 9,
            'category': 'age',
            'keywords': ['age', 'adult', 'kids', 'children', 'teenager'],
            'question': 'Do you treat adults and children?',
            'answer': (
                "Yes! We treat patients of all ages. There's no age limit for orthodontic treatment. We work "
                'with children as young as 7 (when recommended) all the way through adults in their 60s and 70s.'
            ),
        },
        {
            'id': 10,
            'category': 'consultation',
            'keywords': ['consultation', 'free', 'exam', 'evaluation', 'assessment'],
            'question': 'Do you offer free consultations?',
            'answer': (
                "Yes! We offer complimentary orthodontic consultations. During this visit, we'll examine your "
                'teeth, take X-rays if needed, discuss treatment options, and provide a detailed cost estimate.'
            ),
        },
    ]


class FAQService:
    def __init__(self, clinic_info: dict | None = None) -> None:
        self.faqs = build_faqs(clinic_info or config.CLINIC_INFO)

    def get_faq(self, params: dict) -> dict:
        question = params.get('question')
        category = params.get('category')

        logger.info('FAQ request question=%s category=%s', question, category)

        if category:
            faq = next((faq for faq in self.faqs if faq['category'] == category), None)
            if faq:
                return {'success': True, 'message': faq['answer'], 'category': faq['category']}

        if question:
            faq = self.find_best_match(str(question))
            if faq:
                return {
                    'success': True,
                    'message': faq['answer'],
                    'category': faq['category'],
                    'confidence': 'high',
                }

        return {'success': False, 'message': NO_MATCH_MESSAGE, 'escalate': True}

    def get_all_faqs(self) -> list[dict]:
        return self.faqs

    def find_best_match(self, question: str) -> dict | None:
        lowered = question.lower()
        best_match = None
        highest_score = 0

        for faq in self.faqs:
            score = sum(1 for keyword in faq['keywords'] if keyword.lower() in lowered)
            if score > highest_score:
                highest_score = score
                best_match = faq

        return best_match
