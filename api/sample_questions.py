"""
api/sample_questions.py — BACKEND_URL 없이 실행할 때 쓰는 샘플 과목/문제
"""

from cat_exam.models.question_model import Course, Option, Question


def _opts(*texts: str) -> list[Option]:
    return [Option(key=key, text=text) for key, text in zip("ABCDE", texts)]


SAMPLE_COURSES = [
    Course(id=1, title="Tryout CAT Demo", duration_minutes=30, question_count=6),
    Course(id=2, title="Latihan Tanpa Durasi", duration_minutes=None, question_count=2),
]

SAMPLE_QUESTIONS = {
    1: [
        Question(
            id=101, category="TIU", text="Lapar : Makan = Haus : ...",
            options=_opts("Minum", "Tidur", "Lari", "Duduk"),
            correct_option_key="A",
            explanation="Lapar diatasi dengan makan, haus diatasi dengan minum.",
        ),
        Question(
            id=102, category="TIU", text="Berapakah $12 \\times 8$?",
            options=_opts("86", "96", "106", "108"),
            correct_option_key="B",
        ),
        Question(
            id=103, category="TWK", text="Pancasila disahkan pada tanggal ...",
            options=_opts("17 Agustus 1945", "1 Juni 1945", "18 Agustus 1945", "22 Juni 1945"),
            correct_option_key="C",
            explanation="PPKI mengesahkan Pancasila pada 18 Agustus 1945.",
        ),
        Question(
            id=104, category="TWK", text="Lambang negara Indonesia adalah ...",
            options=_opts("Garuda Pancasila", "Harimau", "Banteng", "Rajawali"),
            correct_option_key="A",
        ),
        Question(
            id=105, category="TKP", text="Rekan kerja meminta bantuan saat Anda sibuk. Sikap Anda?",
            options=_opts("Menolak", "Membantu setelah tugas selesai", "Mengabaikan",
                          "Marah", "Melapor ke atasan"),
            correct_option_key="B",
        ),
        Question(
            id=106, category="TIU", text="Deret: 2, 4, 8, 16, ...",
            options=_opts("18", "24", "32", "64"),
            correct_option_key="C",
            explanation="Setiap suku dikali 2.",
        ),
    ],
    2: [
        Question(
            id=201, text="Ibu kota Indonesia saat ini adalah ...",
            options=_opts("Jakarta", "Bandung"),
            correct_option_key="A",
        ),
        Question(
            id=202, text="5 + 7 = ...",
            options=_opts("11", "12", "13"),
            correct_option_key="B",
        ),
    ],
}

# 로컬 실행용 토큰 → 사용자
SAMPLE_TOKENS = {
    "demo-token": "demo-user",
    "demo-premium-token": "premium-user",
}
SAMPLE_PREMIUM_USERS = ["premium-user"]
