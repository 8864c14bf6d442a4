from quest_academy.classes.class_service import INVITE_CODE_ALPHABET, random_invite_code


def test_alphabet_has_no_ambiguous_characters():
    for char in "01IO":
        assert char not in INVITE_CODE_ALPHABET


def test_codes_use_alphabet():
    for _ in range(50):
        code = random_invite_code()
        assert len(code) == 6
        assert set(code) <= set(INVITE_CODE_ALPHABET)
