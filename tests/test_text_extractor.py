from conftest import result
from services.text_extractor import (
    default_courses,
    extract_course_names,
    extract_major_description,
    has_academic_content,
    is_blocklisted,
    is_valid_course_name,
)


def test_quoted_course_names_are_extracted():
    text = "本专业主要课程有《数据结构》《操作系统原理》和《计算机网络》。"
    names = extract_course_names(text, "计算机科学")
    assert {"数据结构", "操作系统原理", "计算机网络"} <= names


def test_major_itself_is_not_a_course():
    names = extract_course_names("《心理学导论》 “心理学” 课程介绍", "心理学导论")
    assert "心理学导论" not in names


def test_english_introduction_courses():
    names = extract_course_names("Core courses: Introduction to Law.", "Law")
    assert "Introduction to Law" in names


def test_noise_phrases_are_rejected():
    assert not is_valid_course_name("12345")
    assert not is_valid_course_name("Calculus")  # single latin word
    assert not is_valid_course_name("清华大学计算机系")
    assert not is_valid_course_name("点击查看课程详情")
    assert not is_valid_course_name("2024年课程安排")
    assert not is_valid_course_name("免费试听课程")
    assert not is_valid_course_name("ab")


def test_blocklist_is_bilingual():
    assert is_blocklisted("University Admissions")
    assert is_blocklisted("Contact us by e-mail")
    assert is_blocklisted("课程价格说明")
    assert not is_blocklisted("线性代数")


def test_academic_content():
    assert has_academic_content("线性代数")
    assert has_academic_content("Linear Algebra")
    assert not has_academic_content("Hello World")


def test_extracted_names_respect_length_bounds():
    text = "《这是一个非常非常非常非常非常长的不可能是课程名称的短语》《数学分析》"
    names = extract_course_names(text)
    assert all(3 <= len(n) <= 20 for n in names)
    assert "数学分析" in names


def test_major_description_picks_first_informative_snippet():
    results = [
        result("短", "经济学"),
        result("经济学 培养方案", "经济学专业培养具备扎实经济理论基础和分析能力的高级专门人才，" * 10),
    ]
    description = extract_major_description(results, "经济学")
    assert description.startswith("经济学专业")
    assert description.endswith("...")
    assert len(description) == 203


def test_major_description_empty_when_nothing_matches():
    assert extract_major_description([result("foo", "bar baz qux quux corge grault")], "经济学") == ""


def test_default_courses_by_family():
    assert "操作系统" in default_courses("计算机科学与技术")
    assert "机器学习" in default_courses("数据科学")
    assert "普通心理学" in default_courses("应用心理学")
    assert default_courses("考古学")[0] == "考古学概论"
    assert all(len(default_courses(m)) == 8 for m in ("软件工程", "经济学", "考古学"))


def test_contact_details_are_not_courses():
    assert is_valid_course_name("联系电话021-1234567") is False


def test_compound_course_name_is_valid():
    assert is_valid_course_name("数据结构与算法") is True
