"""Streamlit entry point.

`streamlit run app.py` and `streamlit run streamlit_app.py` serve the same page.
"""

from streamlit_app import main


if __name__ == "__main__":
    main()
